"""
Error Taxonomy
==============

Every failure the bot reports to a user or admin is one of these.
The router turns ValidationError / NotFoundError into a chat reply;
BackendError and StorageError are logged with detail and the user only
sees a generic apology (or a degraded fallback).
"""


class DeskbotError(Exception):
    """Base exception for all bot errors."""
    pass


class ValidationError(DeskbotError):
    """Bad order field, price, date, status, or unparseable input."""
    pass


class NotFoundError(DeskbotError):
    """Unknown order ID or unknown target session."""

    def __init__(self, identifier: str, kind: str = "Data"):
        self.identifier = identifier
        self.kind = kind
        super().__init__(f"{kind} {identifier} tidak ditemukan")


class BackendError(DeskbotError):
    """Generative backend, export or transport failure."""
    pass


class StorageError(DeskbotError):
    """Durable write/read failure."""
    pass
