"""
Admin Command Parser
====================

Admin chat text is parsed into one small dataclass per command, so the
router dispatches on type instead of comparing strings. Command names are
case-sensitive, as admins have always typed them.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

COMMAND_PREFIX = "!"
CHAT_SUFFIX = "@c.us"


@dataclass(frozen=True)
class TakeOver:
    """!ambil <target> - admin handles the chat."""
    target: str


@dataclass(frozen=True)
class Release:
    """!selesai <target> - chat goes back to the AI."""
    target: str


@dataclass(frozen=True)
class ListHuman:
    pass


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class OrderAdd:
    text: str


@dataclass(frozen=True)
class OrderView:
    order_id: Optional[str] = None


@dataclass(frozen=True)
class OrderEdit:
    order_id: str
    field: str
    value: str


@dataclass(frozen=True)
class OrderDelete:
    order_id: str


@dataclass(frozen=True)
class OrderExport:
    pass


@dataclass(frozen=True)
class OrderUsage:
    """`!order` with a missing or unknown sub-command."""
    pass


@dataclass(frozen=True)
class CommandUsage:
    """Known command, missing argument."""
    usage: str


@dataclass(frozen=True)
class UnknownCommand:
    name: str


Command = Union[
    TakeOver, Release, ListHuman, Help,
    OrderAdd, OrderView, OrderEdit, OrderDelete, OrderExport, OrderUsage,
    CommandUsage, UnknownCommand,
]


def is_command(body: str, prefix: str = COMMAND_PREFIX) -> bool:
    return (body or "").strip().startswith(prefix)


def normalize_address(target: str, suffix: str = CHAT_SUFFIX) -> str:
    """'+62 812-345' -> '62812345@c.us'; full addresses are kept as-is."""
    target = target.strip()
    if "@" in target:
        return target
    return re.sub(r"\D", "", target) + suffix


def _split_first(text: str):
    parts = text.strip().split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def parse_command(body: str, prefix: str = COMMAND_PREFIX) -> Optional[Command]:
    """Parse admin text. Returns None if the text is not a command at all."""
    text = (body or "").strip()
    if not text.startswith(prefix):
        return None

    name, rest = _split_first(text)
    first_arg, _ = _split_first(rest)

    if name == f"{prefix}ambil":
        return TakeOver(first_arg) if first_arg else CommandUsage(f"{prefix}ambil <nomor>")
    if name == f"{prefix}selesai":
        return Release(first_arg) if first_arg else CommandUsage(f"{prefix}selesai <nomor>")
    if name == f"{prefix}list":
        return ListHuman()
    if name == f"{prefix}help":
        return Help()
    if name == f"{prefix}order":
        return _parse_order(rest, prefix)
    return UnknownCommand(name)


def _parse_order(rest: str, prefix: str) -> Command:
    sub, args = _split_first(rest)

    if sub == "add":
        return OrderAdd(args.strip())
    if sub == "view":
        order_id, _ = _split_first(args)
        return OrderView(order_id or None)
    if sub == "edit":
        parts = args.strip().split(None, 2)
        if len(parts) < 3:
            return CommandUsage(f"{prefix}order edit <id> <field> <value>")
        return OrderEdit(parts[0], parts[1], parts[2].strip())
    if sub == "delete":
        order_id, _ = _split_first(args)
        return OrderDelete(order_id) if order_id else CommandUsage(f"{prefix}order delete <id>")
    if sub == "export":
        return OrderExport()
    return OrderUsage()
