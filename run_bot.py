"""
Bot Runner - WhatsApp Customer Service Bot
==========================================

Starts WhatsApp Web, waits for the QR pairing, then answers chats until
Ctrl+C.

Uses the messaging provider abstraction for flexibility:
- Currently: Selenium-based WhatsApp Web automation
- Future: WhatsApp Cloud API (swap WhatsAppProvider for another MessagingProvider)
"""

import logging

from deskbot.application import BotRunner
from deskbot.infrastructure.config import get_settings
from deskbot.infrastructure.logs import configure_logging
from deskbot.infrastructure.whatsapp import WhatsAppProvider

logger = logging.getLogger(__name__)


def run_bot():
    """Run the customer service bot."""
    settings = get_settings()
    configure_logging(settings.storage.log_dir)

    print("\n" + "=" * 60)
    print("   Deskbot - WhatsApp Customer Service")
    print("=" * 60 + "\n")

    for issue in settings.validate():
        logger.warning(issue)

    print("Launching WhatsApp Web...")
    print("   Scan the QR code below (or in the browser) with your phone.\n")

    provider = WhatsAppProvider(settings.whatsapp)
    if not provider.connect():
        logger.error("Failed to launch browser")
        return

    if not provider.wait_until_ready(timeout=settings.whatsapp.login_timeout):
        logger.error("WhatsApp didn't load. Try again.")
        provider.close()
        return

    logger.info("✅ WhatsApp Bot siap digunakan!")
    runner = BotRunner.from_settings(settings, provider)

    try:
        runner.run_forever()
    except KeyboardInterrupt:
        print("\n\nInterrupted! Shutting down.")
    finally:
        runner.stop()
        provider.close()


if __name__ == "__main__":
    run_bot()
