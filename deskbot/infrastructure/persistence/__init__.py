from .document_store import DocumentStore, JsonFileStore, InMemoryStore
from .session_store import SessionStore
from .order_ledger import OrderLedger, format_order_id
from .knowledge_base import KnowledgeBase, KnowledgeEntry, FaqEntry

__all__ = [
    "DocumentStore",
    "JsonFileStore",
    "InMemoryStore",
    "SessionStore",
    "OrderLedger",
    "format_order_id",
    "KnowledgeBase",
    "KnowledgeEntry",
    "FaqEntry",
]
