"""
Order Ledger - Order Records with Sequential IDs
================================================

Orders are keyed ORD-0001, ORD-0002, ... from a persisted counter.
The counter only ever goes up, so a deleted ID is never handed out again.

Document layout:
    {"counter": 2, "orders": {"ORD-0001": {...}, "ORD-0002": {...}}}
"""

import dataclasses
import logging
from typing import Callable, Dict, List, Optional, Union

from ...domain.errors import NotFoundError, ValidationError
from ...domain.models import EDITABLE_FIELDS, Order, OrderStatus, now_ms, summarize_orders
from ...domain.order_input import parse_deadline, parse_price
from .document_store import DocumentStore

logger = logging.getLogger(__name__)

ID_PREFIX = "ORD-"


def format_order_id(number: int) -> str:
    return f"{ID_PREFIX}{number:04d}"


class OrderLedger:
    """
    Usage:
        ledger = OrderLedger(JsonFileStore(Path("data/orders.json")))
        order = ledger.create("Jane", "250000", "Edit wedding video", "Video Editing")
        ledger.edit(order.id, "status", "on progress")
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], int] = now_ms):
        self._store = store
        self._clock = clock
        data = store.load({}) or {}
        self._counter: int = int(data.get("counter", 0))
        self._orders: Dict[str, Order] = {
            order_id: Order.from_dict(record)
            for order_id, record in (data.get("orders") or {}).items()
        }

    def _save(self) -> None:
        self._store.save({
            "counter": self._counter,
            "orders": {order_id: o.to_dict() for order_id, o in self._orders.items()},
        })
        logger.info("Orders saved", extra={"meta": {"count": len(self._orders), "counter": self._counter}})

    @property
    def counter(self) -> int:
        return self._counter

    # ── Queries ────────────────────────────────────────────────────

    def get(self, order_id: str) -> Order:
        order = self._orders.get((order_id or "").strip().upper())
        if order is None:
            raise NotFoundError(order_id, kind="Order")
        return order

    def all(self) -> List[Order]:
        return [self._orders[k] for k in sorted(self._orders)]

    def summary(self) -> dict:
        """Totals for exports and the dashboard."""
        return summarize_orders(self.all())

    # ── Mutations ──────────────────────────────────────────────────

    def create(
        self,
        orderer_name: str,
        price: Union[int, str],
        details: str,
        work: str,
        deadline: Optional[Union[int, str]] = None,
    ) -> Order:
        """Validate and store a new order with status todo."""
        parsed_price = parse_price(price)
        if isinstance(deadline, str):
            deadline = parse_deadline(deadline)

        for label, value in (("Nama pemesan", orderer_name), ("Detail", details), ("Jenis pekerjaan", work)):
            if not (value or "").strip():
                raise ValidationError(f"{label} tidak boleh kosong.")

        self._counter += 1
        order = Order(
            id=format_order_id(self._counter),
            orderer_name=orderer_name.strip(),
            price=parsed_price,
            details=details.strip(),
            work=work.strip(),
            status=OrderStatus.TODO,
            time=self._clock(),
            deadline=deadline,
        )
        self._orders[order.id] = order
        self._save()

        logger.info("Order created", extra={"meta": {"id": order.id, "price": order.price}})
        return order

    def edit(self, order_id: str, field: str, raw_value: str) -> Order:
        """
        Change one editable field. The record is untouched if validation fails.

        Raises:
            NotFoundError: unknown order ID
            ValidationError: unknown field or bad value
        """
        order = self.get(order_id)
        canonical = next((f for f in EDITABLE_FIELDS if f.lower() == (field or "").lower()), None)
        if canonical is None:
            raise ValidationError(
                f"Field '{field}' tidak bisa diubah. Pilihan: {', '.join(EDITABLE_FIELDS)}"
            )

        value = (raw_value or "").strip()
        if canonical == "price":
            changes = {"price": parse_price(value)}
        elif canonical == "status":
            status = OrderStatus.parse(value)
            if status is None:
                allowed = ", ".join(s.value for s in OrderStatus)
                raise ValidationError(f"Status '{value}' tidak valid. Pilihan: {allowed}")
            changes = {"status": status}
        elif canonical == "deadline":
            changes = {"deadline": parse_deadline(value)}
        else:
            if not value:
                raise ValidationError(f"{canonical} tidak boleh kosong.")
            attr = "orderer_name" if canonical == "ordererName" else canonical
            changes = {attr: value}

        updated = dataclasses.replace(order, **changes)
        self._orders[order.id] = updated
        self._save()

        logger.info("Order edited", extra={"meta": {"id": order.id, "field": canonical}})
        return updated

    def delete(self, order_id: str) -> Order:
        """Remove an order. The counter is left alone so the ID is never reused."""
        order = self.get(order_id)
        del self._orders[order.id]
        self._save()
        logger.info("Order deleted", extra={"meta": {"id": order.id}})
        return order
