"""
Logging Setup - Colored Console + JSON Lines File
=================================================

Two handlers on the root logger:
- Console: human-friendly, colored by level, meta dict in gray
- File:    one JSON object per line in logs/bot.log

Attach structured context with `extra={"meta": {...}}`:
    logger.info("Message received", extra={"meta": {"from": sender}})

If the log file cannot be written, file logging is switched off for the
rest of the process and console logging carries on.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

LOG_FILE_NAME = "bot.log"

_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[96m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[91m",
}
_GRAY = "\033[90m"
_WHITE = "\033[97m"
_RESET = "\033[0m"

logger = logging.getLogger(__name__)


def to_plain(value: Any) -> Any:
    """Make meta JSON-safe: exceptions become dicts, cycles and oddities become strings."""
    seen = set()

    def convert(obj):
        if isinstance(obj, BaseException):
            return {"name": type(obj).__name__, "message": str(obj)}
        if isinstance(obj, (str, int, float, bool)) or obj is None:
            return obj
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, (dict, list, tuple, set)):
            if id(obj) in seen:
                return "[Circular]"
            seen.add(id(obj))
            if isinstance(obj, dict):
                return {str(k): convert(v) for k, v in obj.items()}
            return [convert(v) for v in obj]
        return str(obj)

    return convert(value)


class ConsoleFormatter(logging.Formatter):
    """[12:30:01] [INFO] message {"meta": ...}"""

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        head = f"[{time_str}] [{record.levelname}]"
        text = record.getMessage()
        meta = getattr(record, "meta", None)
        meta_str = json.dumps(to_plain(meta), ensure_ascii=False) if meta is not None else ""

        if self.use_color:
            color = _COLORS.get(record.levelno, _GRAY)
            line = f"{color}{head}{_RESET} {_WHITE}{text}{_RESET}"
            if meta_str:
                line += f" {_GRAY}{meta_str}{_RESET}"
        else:
            line = f"{head} {text}" + (f" {meta_str}" if meta_str else "")

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonLinesFileHandler(logging.Handler):
    """
    Appends one JSON record per line.

    The first write failure disables this handler for good; the console
    handler keeps working.
    """

    def __init__(self, path: Path, level: int = logging.NOTSET):
        super().__init__(level)
        self.path = Path(path)
        self.enabled = True

    def emit(self, record: logging.LogRecord) -> None:
        if not self.enabled:
            return
        entry = {
            "t": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        meta = getattr(record, "meta", None)
        if meta is not None:
            entry["meta"] = to_plain(meta)
        if record.exc_info and record.exc_info[1] is not None:
            entry["error"] = to_plain(record.exc_info[1])

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            self.enabled = False
            logger.warning("File logging disabled", extra={"meta": {"path": self.path, "error": e}})


def configure_logging(
    log_dir: Optional[Path] = Path("logs"),
    level: int = logging.INFO,
    use_color: Optional[bool] = None,
) -> Optional[JsonLinesFileHandler]:
    """
    Install console + file handlers on the root logger (replacing old ones).

    Returns the file handler, or None when log_dir is None.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if use_color is None:
        use_color = sys.stdout.isatty()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter(use_color=use_color))
    root.addHandler(console)

    # Selenium and urllib3 are chatty at INFO
    for noisy in ("selenium", "urllib3", "WDM"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if log_dir is None:
        return None

    file_handler = JsonLinesFileHandler(Path(log_dir) / LOG_FILE_NAME)
    root.addHandler(file_handler)

    logger.info("Logger startup test", extra={"meta": {"path": file_handler.path}})
    return file_handler
