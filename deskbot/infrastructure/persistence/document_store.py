"""
Document Store - Durable JSON Documents
=======================================

Sessions and orders are each one JSON document that is rewritten whole on
every change. Simple and safe at chat-bot volume; the cost per write grows
with the number of records. A faster backend (append-only log, embedded DB)
can be dropped in behind the same two methods.

USAGE:
    store = JsonFileStore(Path("data/sessions.json"))
    data = store.load({})
    data["628123@c.us"] = {...}
    store.save(data)
"""

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ...domain.errors import StorageError

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """One durable JSON-compatible document."""

    @abstractmethod
    def load(self, default: Any) -> Any:
        """Return the stored document, or `default` if nothing is stored yet."""
        ...

    @abstractmethod
    def save(self, data: Any) -> None:
        """Replace the stored document. Raises StorageError on failure."""
        ...


class JsonFileStore(DocumentStore):
    """JSON file on disk, written via temp file + rename so readers never see half a file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self, default: Any) -> Any:
        if not self.path.exists():
            return default
        try:
            raw = self.path.read_text(encoding="utf-8")
            return json.loads(raw) if raw.strip() else default
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"{self.path} is not valid, starting empty", extra={"meta": {"error": e}})
            return default

    def save(self, data: Any) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {self.path}", extra={"meta": {"error": e}})
            raise StorageError(f"Failed to write {self.path}: {e}") from e


class InMemoryStore(DocumentStore):
    """Non-durable store for tests and dry runs. Keeps deep copies like a file would."""

    def __init__(self, initial: Any = None):
        self._data = copy.deepcopy(initial)
        self.save_count = 0

    def load(self, default: Any) -> Any:
        if self._data is None:
            return default
        return copy.deepcopy(self._data)

    def save(self, data: Any) -> None:
        self._data = copy.deepcopy(data)
        self.save_count += 1

    @property
    def data(self) -> Any:
        return copy.deepcopy(self._data)
