from .messaging_provider import (
    MessagingProvider,
    WhatsAppProvider,
    InboundMessage,
    render_qr,
)

__all__ = ["MessagingProvider", "WhatsAppProvider", "InboundMessage", "render_qr"]
