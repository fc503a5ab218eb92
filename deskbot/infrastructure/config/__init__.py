from .settings import (
    Settings,
    WhatsAppSettings,
    LLMSettings,
    BotSettings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "WhatsAppSettings",
    "LLMSettings",
    "BotSettings",
    "StorageSettings",
    "get_settings",
]
