"""
Domain Models - Sessions and Orders
===================================

Plain dataclasses with explicit JSON mapping. Stored documents use the
camelCase keys the bot has always written (ordererName, ...), Python code
uses snake_case attributes.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Mode(Enum):
    """Who answers a sender: the AI responder or a human admin."""
    AI = "ai"
    HUMAN = "human"


class Role(Enum):
    USER = "user"
    BOT = "bot"


class OrderStatus(Enum):
    """Order lifecycle. Values are what admins type in `!order edit`."""
    TODO = "todo"
    ON_PROGRESS = "on progress"
    DONE = "done"
    CANCELED = "canceled"

    @classmethod
    def parse(cls, raw: str) -> Optional["OrderStatus"]:
        """Case-insensitive lookup; None if not one of the four values."""
        normalized = " ".join((raw or "").split()).lower()
        for status in cls:
            if status.value == normalized:
                return status
        return None


@dataclass
class MemoryEntry:
    role: Role
    text: str
    timestamp: int

    def to_dict(self) -> dict:
        return {"role": self.role.value, "text": self.text, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "MemoryEntry":
        return cls(
            role=Role(data.get("role", "user")),
            text=data.get("text", ""),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class Session:
    """Per-sender conversation state."""
    mode: Mode = Mode.AI
    greeted: bool = False
    memory: List[MemoryEntry] = field(default_factory=list)

    @property
    def is_human(self) -> bool:
        return self.mode is Mode.HUMAN

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "greeted": self.greeted,
            "memory": [entry.to_dict() for entry in self.memory],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        # Older session files only carried {"mode": ...}
        try:
            mode = Mode(data.get("mode", Mode.AI.value))
        except ValueError:
            mode = Mode.AI
        return cls(
            mode=mode,
            greeted=bool(data.get("greeted", False)),
            memory=[MemoryEntry.from_dict(m) for m in data.get("memory", [])],
        )


# Fields an admin may change with `!order edit`
EDITABLE_FIELDS = ("ordererName", "price", "details", "work", "status", "deadline")


@dataclass
class Order:
    """Order record."""
    id: str
    orderer_name: str
    price: int
    details: str
    work: str
    status: OrderStatus = OrderStatus.TODO
    time: int = 0
    deadline: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ordererName": self.orderer_name,
            "price": self.price,
            "details": self.details,
            "work": self.work,
            "status": self.status.value,
            "time": self.time,
            "deadline": self.deadline,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        return cls(
            id=data["id"],
            orderer_name=data.get("ordererName", ""),
            price=int(data.get("price", 0)),
            details=data.get("details", ""),
            work=data.get("work", ""),
            status=OrderStatus.parse(data.get("status", "")) or OrderStatus.TODO,
            time=int(data.get("time") or 0),
            deadline=data.get("deadline"),
        )


def summarize_orders(orders: List[Order]) -> dict:
    """Order count, revenue (sum of price) and count per status."""
    by_status = {status.value: 0 for status in OrderStatus}
    for order in orders:
        by_status[order.status.value] += 1
    return {
        "total": len(orders),
        "revenue": sum(o.price for o in orders),
        "by_status": by_status,
    }
