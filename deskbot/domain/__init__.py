# Domain Layer
# ============
# Pure business logic with no I/O:
# - models: sessions, orders and their enums
# - errors: exception taxonomy shared by every layer
# - commands: admin command parser
# - order_input: free-text order, price and deadline parsing
# - rate_limiter: per-sender sliding window

from .errors import DeskbotError, ValidationError, NotFoundError, BackendError, StorageError
from .models import Mode, Role, OrderStatus, MemoryEntry, Session, Order, EDITABLE_FIELDS, summarize_orders
from .rate_limiter import RateLimiter

__all__ = [
    "DeskbotError",
    "ValidationError",
    "NotFoundError",
    "BackendError",
    "StorageError",
    "Mode",
    "Role",
    "OrderStatus",
    "MemoryEntry",
    "Session",
    "Order",
    "EDITABLE_FIELDS",
    "summarize_orders",
    "RateLimiter",
]
