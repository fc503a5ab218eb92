"""
Order Input Parsing
===================

Turns admin free text into order fields.

`!order add` accepts either one pipe-delimited line:
    Jane|250000|Edit wedding video|Video Editing|2025-01-15
or one field per line:
    Jane
    250000
    Edit wedding video
    Video Editing
    2025-01-15
The deadline (5th field) is optional in both forms.
"""

import re
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .errors import ValidationError

ORDER_FIELDS = ("ordererName", "price", "details", "work", "deadline")

# Thousands-grouped numbers as Indonesian admins type them: 250.000 / 250,000
_GROUPED_NUMBER = re.compile(r"^\d{1,3}([.,]\d{3})+$")

# Ordered: first pattern that matches AND yields a real calendar date wins.
DATE_PATTERNS: List[Tuple[str, re.Pattern, Callable[[re.Match], Tuple[int, int, int]]]] = [
    ("YYYY-MM-DD", re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"),
     lambda m: (int(m.group(1)), int(m.group(2)), int(m.group(3)))),
    ("DD/MM/YYYY", re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"),
     lambda m: (int(m.group(3)), int(m.group(2)), int(m.group(1)))),
    ("DD-MM-YYYY", re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$"),
     lambda m: (int(m.group(3)), int(m.group(2)), int(m.group(1)))),
]


def parse_order_input(text: str) -> Optional[dict]:
    """
    Parse `!order add` free text.

    Returns:
        Dict with ordererName, price (raw string), details, work, deadline
        (raw string or None), or None if the text has the wrong shape.
    """
    if not text or not text.strip():
        return None

    lines = [line.strip() for line in text.strip().splitlines() if line.strip()]

    if len(lines) == 1 and "|" in lines[0]:
        parts = [part.strip() for part in lines[0].split("|")]
    elif 4 <= len(lines) <= 5:
        parts = lines
    else:
        return None

    if not 4 <= len(parts) <= 5:
        return None

    # name, price, details and work are all required
    if any(not part for part in parts[:4]):
        return None

    fields = dict(zip(ORDER_FIELDS, parts))
    fields["deadline"] = fields.get("deadline") or None
    return fields


def parse_price(raw) -> int:
    """Parse a positive whole-unit price. Raises ValidationError otherwise."""
    if isinstance(raw, bool):
        raise ValidationError("Harga harus berupa angka bulat positif.")
    if isinstance(raw, int):
        value = raw
    else:
        cleaned = str(raw or "").strip()
        if _GROUPED_NUMBER.match(cleaned):
            cleaned = re.sub(r"[.,]", "", cleaned)
        if not cleaned.isdigit():
            raise ValidationError(f"Harga tidak valid: {raw!r}. Harus berupa angka bulat positif.")
        value = int(cleaned)

    if value <= 0:
        raise ValidationError("Harga harus lebih dari 0.")
    return value


def parse_deadline(raw: Optional[str]) -> Optional[int]:
    """
    Parse a deadline into epoch milliseconds (local midnight).

    Empty input means "no deadline" and returns None.
    """
    value = (raw or "").strip()
    if not value:
        return None

    for _name, pattern, to_ymd in DATE_PATTERNS:
        match = pattern.match(value)
        if not match:
            continue
        year, month, day = to_ymd(match)
        try:
            # Years near the calendar edges fail in timestamp(), not in datetime()
            return int(datetime(year, month, day).timestamp() * 1000)
        except (ValueError, OverflowError, OSError):
            continue

    accepted = ", ".join(name for name, _, _ in DATE_PATTERNS)
    raise ValidationError(f"Format tanggal tidak valid: {value}. Gunakan {accepted}.")


def format_date(epoch_ms: Optional[int], with_time: bool = False) -> str:
    """Render epoch milliseconds for chat replies and exports ('-' if empty)."""
    if not epoch_ms:
        return "-"
    moment = datetime.fromtimestamp(epoch_ms / 1000)
    return moment.strftime("%Y-%m-%d %H:%M" if with_time else "%Y-%m-%d")


def format_price(price: int) -> str:
    """250000 -> 'Rp250.000'"""
    return "Rp" + f"{price:,}".replace(",", ".")
