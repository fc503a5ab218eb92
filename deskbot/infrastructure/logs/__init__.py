from .log_setup import configure_logging, ConsoleFormatter, JsonLinesFileHandler, to_plain

__all__ = ["configure_logging", "ConsoleFormatter", "JsonLinesFileHandler", "to_plain"]
