"""
Bot Runner - Wires Components and Runs the Poll Loop
=====================================================

ARCHITECTURAL DECISION:
- One thread, one batch at a time: messages are handled serially in arrival order
- A failure while handling one message is logged and never stops the loop

USAGE:
    settings = get_settings()
    provider = WhatsAppProvider(settings.whatsapp)
    runner = BotRunner.from_settings(settings, provider)
    runner.run_forever()
"""

import logging
import time
from typing import Iterable, Optional

from ..domain.rate_limiter import RateLimiter
from ..infrastructure.config import Settings
from ..infrastructure.exporter import OrderExporter
from ..infrastructure.llm import CompletionService
from ..infrastructure.persistence import JsonFileStore, KnowledgeBase, OrderLedger, SessionStore
from ..infrastructure.whatsapp import InboundMessage, MessagingProvider
from .cleanup import CleanupScheduler
from .message_router import MessageRouter

logger = logging.getLogger(__name__)


def build_router(
    settings: Settings,
    provider: MessagingProvider,
    scheduler: Optional[CleanupScheduler] = None,
    completion: Optional[CompletionService] = None,
) -> MessageRouter:
    """Create every component from settings, file-backed."""
    storage = settings.storage
    bot = settings.bot

    sessions = SessionStore(
        JsonFileStore(storage.sessions_file),
        memory_limit=bot.memory_limit,
        text_limit=bot.memory_text_limit,
    )
    ledger = OrderLedger(JsonFileStore(storage.orders_file))
    knowledge = KnowledgeBase.from_files(storage.knowledge_file, storage.faq_file)

    return MessageRouter(
        provider=provider,
        sessions=sessions,
        ledger=ledger,
        knowledge=knowledge,
        completion=completion or CompletionService(settings.llm),
        rate_limiter=RateLimiter(window_ms=bot.rate_limit_window_ms, max_messages=bot.rate_limit_max),
        exporter=OrderExporter(storage.export_dir),
        scheduler=scheduler or CleanupScheduler(),
        settings=bot,
    )


class BotRunner:
    def __init__(self, provider: MessagingProvider, router: MessageRouter, poll_interval: float = 2.0):
        self.provider = provider
        self.router = router
        self.poll_interval = poll_interval
        self._running = False

    @classmethod
    def from_settings(cls, settings: Settings, provider: MessagingProvider) -> "BotRunner":
        return cls(provider, build_router(settings, provider), settings.whatsapp.poll_interval)

    def handle_batch(self, messages: Iterable[InboundMessage]) -> int:
        """Route each message; returns how many were handled without error."""
        handled = 0
        for message in messages:
            try:
                self.router.handle(message)
                handled += 1
            except Exception as e:
                logger.exception(
                    "Failed to handle message",
                    extra={"meta": {"from": message.sender, "error": e}},
                )
        return handled

    def poll_once(self) -> int:
        try:
            messages = self.provider.poll()
        except Exception as e:
            logger.exception("Polling failed", extra={"meta": {"error": e}})
            return 0
        return self.handle_batch(messages)

    def run_forever(self) -> None:
        self._running = True
        logger.info("Bot loop started", extra={"meta": {"poll_interval": self.poll_interval}})
        while self._running:
            self.poll_once()
            time.sleep(self.poll_interval)

    def stop(self) -> None:
        self._running = False
        self.router.scheduler.cancel_all()
