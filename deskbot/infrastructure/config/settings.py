"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclass for safety and clarity
- Single source of truth for all configurable values

EXTENSIBILITY:
- To switch LLM provider: change api_url/model (any OpenAI-compatible API works)
- To move data files: set DATA_DIR / EXPORT_DIR / LOG_DIR
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

from ...domain.commands import normalize_address

# Load .env file if present (development convenience)
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _normalize(address: str) -> str:
    address = address.strip()
    return normalize_address(address) if address else ""


def _env_addresses(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(a for a in (_normalize(part) for part in raw.split(",")) if a)


@dataclass(frozen=True)
class WhatsAppSettings:
    """WhatsApp Web automation settings."""

    # Browser settings
    headless: bool = field(default_factory=lambda: _env_bool("WHATSAPP_HEADLESS", False))
    profile_dir: Path = field(
        default_factory=lambda: Path(os.getenv("WHATSAPP_PROFILE_DIR", "whatsapp_profile"))
    )

    # Seconds between unread-chat polls
    poll_interval: float = field(
        default_factory=lambda: float(os.getenv("WHATSAPP_POLL_INTERVAL", "2"))
    )

    # Seconds to wait for QR scan on startup
    login_timeout: int = 300


@dataclass(frozen=True)
class LLMSettings:
    """OpenRouter LLM settings for AI replies."""

    api_key: str = field(default_factory=lambda: os.getenv("OPENROUTER_API_KEY", ""))
    api_url: str = "https://openrouter.ai/api/v1/chat/completions"

    model: str = field(
        default_factory=lambda: os.getenv("LLM_MODEL", "meta-llama/llama-3.3-70b-instruct:free")
    )

    temperature: float = 0.4
    max_tokens: int = 512
    timeout_seconds: int = field(default_factory=lambda: int(os.getenv("LLM_TIMEOUT", "30")))


@dataclass(frozen=True)
class BotSettings:
    """Routing rules: who is admin, who may talk to the bot, how fast."""

    admin_id: str = field(default_factory=lambda: _normalize(os.getenv("ADMIN_ID", "")))

    # "all" answers everyone, "allowlist" only admin + allow_list
    allow_mode: str = field(default_factory=lambda: os.getenv("ALLOW_MODE", "all").strip().lower())
    allow_list: Tuple[str, ...] = field(default_factory=lambda: _env_addresses("ALLOW_LIST"))

    rate_limit_window_ms: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_WINDOW_MS", "10000"))
    )
    rate_limit_max: int = field(default_factory=lambda: int(os.getenv("RATE_LIMIT_MAX", "3")))

    memory_limit: int = 10
    memory_text_limit: int = 400

    # Seconds an export file stays on disk after being sent
    export_retention_seconds: int = 30

    # Max characters per WhatsApp message when listing orders
    chunk_size: int = 4000

    command_prefix: str = "!"

    @property
    def restricted(self) -> bool:
        return self.allow_mode == "allowlist"


@dataclass(frozen=True)
class StorageSettings:
    """Where JSON documents, exports and logs live."""

    data_dir: Path = field(default_factory=lambda: Path(os.getenv("DATA_DIR", "data")))
    export_dir: Path = field(default_factory=lambda: Path(os.getenv("EXPORT_DIR", "exports")))
    log_dir: Path = field(default_factory=lambda: Path(os.getenv("LOG_DIR", "logs")))

    @property
    def sessions_file(self) -> Path:
        return self.data_dir / "sessions.json"

    @property
    def orders_file(self) -> Path:
        return self.data_dir / "orders.json"

    @property
    def knowledge_file(self) -> Path:
        return self.data_dir / "knowledge.json"

    @property
    def faq_file(self) -> Path:
        return self.data_dir / "faq.json"


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from deskbot.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.bot.admin_id)
    """

    # Sub-settings groups
    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)
    bot: BotSettings = field(default_factory=BotSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        if not self.bot.admin_id:
            issues.append(
                "WARNING: ADMIN_ID not set. "
                "Admin commands and handoff notifications are disabled."
            )

        if self.bot.allow_mode not in ("all", "allowlist"):
            issues.append(
                f"WARNING: ALLOW_MODE={self.bot.allow_mode!r} is not 'all' or 'allowlist'. "
                "Treating it as 'all'."
            )

        if self.bot.restricted and not self.bot.allow_list:
            issues.append(
                "WARNING: ALLOW_MODE=allowlist but ALLOW_LIST is empty. "
                "Only the admin can talk to the bot."
            )

        if not self.llm.api_key:
            issues.append(
                "WARNING: OPENROUTER_API_KEY not set. "
                "AI replies will fall back to an apology message."
            )

        for path in (self.storage.knowledge_file, self.storage.faq_file):
            if not path.exists():
                issues.append(f"WARNING: {path} not found. It will be treated as empty.")

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
