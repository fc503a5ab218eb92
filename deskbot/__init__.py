# Deskbot - WhatsApp Customer Service Bot
# ========================================
# Routes inbound WhatsApp chats between an AI responder and a human admin,
# and keeps a small order ledger the admin drives with chat commands.
#
# ARCHITECTURE LAYERS:
# - Presentation:   run_bot.py (bot process), main.py / web/ (read-only dashboard)
# - Application:    Message routing and export cleanup (no storage details)
# - Domain:         Models, command parsing, order input parsing, rate limiting
# - Infrastructure: External services (WhatsApp, LLM, JSON files, Excel, logs)
#
# Infrastructure pieces sit behind small interfaces (DocumentStore,
# MessagingProvider, CompletionService) so tests can swap them for fakes.

__version__ = "1.0.0"
