"""
Messaging Provider - Abstraction Layer for WhatsApp Messaging
==============================================================

Provides a unified interface for receiving and sending WhatsApp messages.
The router only talks to MessagingProvider, so tests use an in-memory fake
and the Selenium implementation can be swapped for another transport.

USAGE:
    provider = WhatsAppProvider()
    provider.connect()                 # prints the pairing QR in the terminal
    provider.wait_until_ready()
    for message in provider.poll():
        ...
    provider.send_message("628123@c.us", "Halo!")
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import qrcode

from ..config import WhatsAppSettings, get_settings

logger = logging.getLogger(__name__)

STATUS_BROADCAST = "status@broadcast"
GROUP_SUFFIX = "@g.us"


@dataclass(frozen=True)
class InboundMessage:
    """One inbound chat message as the router sees it."""
    sender: str
    body: str
    from_me: bool = False
    is_group: bool = False
    is_status: bool = False
    message_id: str = ""


def render_qr(payload: str) -> None:
    """Print a pairing payload as a terminal QR code for scanning with the phone."""
    qr = qrcode.QRCode(border=1)
    qr.add_data(payload)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


class MessagingProvider(ABC):
    """
    Abstract base class for WhatsApp messaging providers.
    Implement this interface to add new messaging backends.
    """

    @abstractmethod
    def connect(self, on_qr: Optional[Callable[[str], None]] = None) -> bool:
        """Start the transport. Returns True if successful."""
        ...

    @abstractmethod
    def wait_until_ready(self, timeout: int = 300) -> bool:
        """Block until paired and ready to exchange messages."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if provider is currently connected and ready."""
        ...

    @abstractmethod
    def send_message(self, address: str, text: str) -> bool:
        """Send a text message to a chat address. Returns True if sent."""
        ...

    @abstractmethod
    def send_file(self, address: str, path: Path, caption: str = "") -> bool:
        """Send a file attachment to a chat address. Returns True if sent."""
        ...

    @abstractmethod
    def poll(self) -> List[InboundMessage]:
        """Return messages that arrived since the last poll, oldest first."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...


class WhatsAppProvider(MessagingProvider):
    """
    WhatsApp Web via Selenium.

    Tracks which message IDs were already delivered, so every poll only
    returns new rows. When a chat is opened the rows already on screen are
    treated as seen, except the ones counted by the unread badge.
    """

    SEEN_CAPACITY = 5000

    def __init__(self, settings: Optional[WhatsAppSettings] = None):
        self._settings = settings or get_settings().whatsapp
        self._client = None
        self._connected = False
        self._on_qr: Optional[Callable[[str], None]] = None
        self._current_chat: Optional[str] = None
        self._seen: set = set()
        self._seen_order: deque = deque()

    def connect(self, on_qr: Optional[Callable[[str], None]] = None) -> bool:
        """Launch browser and open WhatsApp Web."""
        self._on_qr = on_qr or self._default_on_qr
        try:
            from .whatsapp_client import WhatsAppClient
            self._client = WhatsAppClient(self._settings)
            return True
        except Exception as e:
            logger.exception(f"Failed to launch Selenium WhatsApp: {e}")
            return False

    @staticmethod
    def _default_on_qr(payload: str) -> None:
        logger.info("QR diterima, scan untuk login:")
        render_qr(payload)

    def wait_until_ready(self, timeout: int = 300) -> bool:
        """Wait for QR code scan and confirm login."""
        if not self._client:
            return False
        self._connected = self._client.wait_for_login(timeout=timeout, on_qr=self._on_qr)
        return self._connected

    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    # ── Sending ────────────────────────────────────────────────────

    def _open(self, address: str) -> bool:
        if self._current_chat == address:
            return True
        phone = address.split("@", 1)[0]
        if not self._client.open_chat(phone):
            return False
        self._current_chat = address
        self._mark_seen(m.message_id for m in self._client.read_messages())
        return True

    def send_message(self, address: str, text: str) -> bool:
        """Open chat and send message via Selenium."""
        if not self.is_connected():
            logger.error("WhatsApp not connected")
            return False
        if not self._open(address):
            return False
        return self._client.send_message(text)

    def send_file(self, address: str, path: Path, caption: str = "") -> bool:
        if not self.is_connected():
            logger.error("WhatsApp not connected")
            return False
        if not self._open(address):
            return False
        return self._client.send_file(path, caption)

    # ── Receiving ──────────────────────────────────────────────────

    def poll(self) -> List[InboundMessage]:
        if not self.is_connected():
            return []

        inbound: List[InboundMessage] = []

        # New rows in the chat that is already open (no unread badge for those)
        inbound.extend(self._collect(self._client.read_messages()))

        while True:
            unread = self._client.open_next_unread_chat()
            if unread is None:
                break
            # Another chat is on screen now; media-only chats yield no rows to name it
            self._current_chat = None
            rows = self._client.read_messages()
            if rows:
                self._current_chat = rows[-1].chat_id
            incoming = [r for r in rows if not r.from_me]
            fresh_ids = {r.message_id for r in incoming[-unread:]} if unread > 0 else set()
            self._mark_seen(r.message_id for r in rows if r.message_id not in fresh_ids)
            inbound.extend(self._collect(rows))

        return inbound

    def _collect(self, rows) -> List[InboundMessage]:
        messages = []
        for row in rows:
            if row.message_id in self._seen:
                continue
            self._mark_seen([row.message_id])
            messages.append(InboundMessage(
                sender=row.chat_id,
                body=row.text,
                from_me=row.from_me,
                is_group=row.chat_id.endswith(GROUP_SUFFIX),
                is_status=row.chat_id == STATUS_BROADCAST,
                message_id=row.message_id,
            ))
        return messages

    def _mark_seen(self, message_ids) -> None:
        for message_id in message_ids:
            if message_id in self._seen:
                continue
            self._seen.add(message_id)
            self._seen_order.append(message_id)
            if len(self._seen_order) > self.SEEN_CAPACITY:
                self._seen.discard(self._seen_order.popleft())

    @property
    def raw_client(self):
        """Access the underlying WhatsAppClient (for advanced Selenium usage)."""
        return self._client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
            self._connected = False
