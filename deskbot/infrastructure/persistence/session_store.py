"""
Session Store - Per-Sender Mode, Greeting Flag and Memory
==========================================================

Sessions are created lazily on first contact and never deleted.
Every mutation persists the whole session map immediately.
"""

import logging
from typing import Callable, Dict, List, Optional

from ...domain.models import MemoryEntry, Mode, Role, Session, now_ms
from .document_store import DocumentStore

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Usage:
        sessions = SessionStore(JsonFileStore(Path("data/sessions.json")))
        sessions.ensure("628123@c.us")
        sessions.append_memory("628123@c.us", Role.USER, "halo")
        print(sessions.build_context_block("628123@c.us"))
    """

    def __init__(
        self,
        store: DocumentStore,
        memory_limit: int = 10,
        text_limit: int = 400,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self.memory_limit = memory_limit
        self.text_limit = text_limit
        self._clock = clock
        self._sessions: Dict[str, Session] = {
            sender: Session.from_dict(data or {})
            for sender, data in (store.load({}) or {}).items()
        }

    def _save(self) -> None:
        self._store.save({sender: s.to_dict() for sender, s in self._sessions.items()})
        logger.info("Sessions saved", extra={"meta": {"count": len(self._sessions)}})

    # ── Queries ────────────────────────────────────────────────────

    def get(self, sender: str) -> Optional[Session]:
        return self._sessions.get(sender)

    def exists(self, sender: str) -> bool:
        return sender in self._sessions

    def all(self) -> Dict[str, Session]:
        return dict(self._sessions)

    def human_sessions(self) -> List[str]:
        """Senders currently handled by a human admin."""
        return [sender for sender, s in self._sessions.items() if s.mode is Mode.HUMAN]

    def build_context_block(self, sender: str) -> str:
        """Memory as 'User: ...' / 'Bot: ...' lines, oldest first. Empty if no memory."""
        session = self._sessions.get(sender)
        if not session or not session.memory:
            return ""
        lines = []
        for entry in session.memory:
            label = "User" if entry.role is Role.USER else "Bot"
            lines.append(f"{label}: {entry.text}")
        return "\n".join(lines)

    # ── Mutations ──────────────────────────────────────────────────

    def ensure(self, sender: str) -> Session:
        """Create a default session if absent. Idempotent."""
        session = self._sessions.get(sender)
        if session is None:
            session = Session()
            self._sessions[sender] = session
            self._save()
        return session

    def set_mode(self, sender: str, mode: Mode) -> Session:
        session = self._sessions.setdefault(sender, Session())
        session.mode = mode
        self._save()
        return session

    def mark_greeted(self, sender: str) -> Session:
        session = self._sessions.setdefault(sender, Session())
        session.greeted = True
        self._save()
        return session

    def append_memory(self, sender: str, role: Role, text: str) -> Session:
        """Append one turn (truncated), dropping the oldest turns past the cap."""
        session = self._sessions.setdefault(sender, Session())
        session.memory.append(
            MemoryEntry(role=role, text=(text or "")[: self.text_limit], timestamp=self._clock())
        )
        while len(session.memory) > self.memory_limit:
            session.memory.pop(0)
        self._save()
        return session
