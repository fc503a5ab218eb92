# Application layer - Message routing, admin commands, bot loop
# Depends on domain + infrastructure. Entry scripts depend on this.

from .cleanup import CleanupScheduler
from .message_router import MessageRouter, chunk_blocks, format_order
from .bot_runner import BotRunner, build_router

__all__ = ["CleanupScheduler", "MessageRouter", "BotRunner", "build_router", "chunk_blocks", "format_order"]
