# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - whatsapp/: Selenium-based WhatsApp Web transport
# - llm/: OpenRouter text completion
# - persistence/: JSON document stores (sessions, orders, knowledge/FAQ)
# - exporter/: Excel export of the order ledger
# - logs/: Console + JSONL file logging
# - config/: Environment and settings management
#
# This layer can be replaced entirely without affecting domain/application layers.
