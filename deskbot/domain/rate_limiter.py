"""
Per-sender sliding-window rate limiter.

In-memory only: windows are rebuilt from nothing after a restart.
Messages are handled one at a time, so no locking is needed.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List

from .models import now_ms

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Usage:
        limiter = RateLimiter(window_ms=10_000, max_messages=3)
        if limiter.check("628123@c.us"):
            ...  # too many messages, throttle
    """

    def __init__(
        self,
        window_ms: int = 10_000,
        max_messages: int = 3,
        clock: Callable[[], int] = now_ms,
    ):
        self.window_ms = window_ms
        self.max_messages = max_messages
        self._clock = clock
        self._windows: Dict[str, List[int]] = defaultdict(list)

    def check(self, sender: str) -> bool:
        """Record one message from sender. Returns True if sender is now over the limit."""
        now = self._clock()
        cutoff = now - self.window_ms

        timestamps = [ts for ts in self._windows[sender] if ts >= cutoff]
        timestamps.append(now)
        self._windows[sender] = timestamps

        limited = len(timestamps) > self.max_messages
        if limited:
            logger.warning(
                "Rate limit exceeded",
                extra={"meta": {"from": sender, "count": len(timestamps)}},
            )
        return limited

    def reset(self, sender: str) -> None:
        self._windows.pop(sender, None)

    def window(self, sender: str) -> List[int]:
        """Copy of the timestamps currently held for sender."""
        return list(self._windows.get(sender, []))
