"""
Delayed deletion of export files.

Exports are deleted a fixed time after being sent. Each deletion is a
cancellable daemon timer; if the process exits first the file simply
stays on disk.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Dict

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """
    Usage:
        scheduler = CleanupScheduler()
        scheduler.schedule(Path("exports/orders_2025-01-15.xlsx"), delay_s=30)
    """

    def __init__(self, timer_factory: Callable = threading.Timer):
        self._timer_factory = timer_factory
        self._pending: Dict[Path, object] = {}
        self._lock = threading.Lock()

    @property
    def pending(self) -> Dict[Path, object]:
        with self._lock:
            return dict(self._pending)

    def schedule(self, path: Path, delay_s: float):
        """Delete path after delay_s seconds. Rescheduling a path replaces its old timer."""
        path = Path(path)
        timer = self._timer_factory(delay_s, self._run, args=(path,))
        timer.daemon = True
        with self._lock:
            previous = self._pending.pop(path, None)
            if previous is not None:
                previous.cancel()
            self._pending[path] = timer
        timer.start()
        logger.info("Cleanup scheduled", extra={"meta": {"path": path, "delay_s": delay_s}})
        return timer

    def cancel(self, path: Path) -> bool:
        with self._lock:
            timer = self._pending.pop(Path(path), None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._pending.values())
            self._pending.clear()
        for timer in timers:
            timer.cancel()

    def _run(self, path: Path) -> None:
        with self._lock:
            self._pending.pop(path, None)
        self.remove(path)

    @staticmethod
    def remove(path: Path) -> bool:
        """Best-effort delete. Failures are logged, never raised."""
        try:
            Path(path).unlink()
            logger.info("Export file removed", extra={"meta": {"path": path}})
            return True
        except FileNotFoundError:
            logger.debug(f"Export file already gone: {path}")
            return False
        except OSError as e:
            logger.warning("Failed to remove export file", extra={"meta": {"path": path, "error": e}})
            return False
