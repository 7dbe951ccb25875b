import time
from dataclasses import dataclass
from typing import Callable, Dict

import settings


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Per-identity counter over fixed, non-overlapping windows.

    The counter restarts whenever a call arrives after the current window
    has expired, so a burst straddling a window boundary can reach twice
    the nominal maximum.
    """

    def __init__(
        self,
        window: float = settings.RATE_LIMIT_WINDOW,
        max_events: int = settings.RATE_LIMIT_MAX,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window = window
        self.max_events = max_events
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}

    def allow(self, identity: str) -> bool:
        now = self._clock()
        entry = self._entries.get(identity)
        if entry is None:
            self._entries[identity] = RateLimitEntry(count=1, reset_at=now + self.window)
            return True
        if now > entry.reset_at:
            entry.count = 1
            entry.reset_at = now + self.window
            return True
        entry.count += 1
        return entry.count <= self.max_events

    def forget(self, identity: str) -> None:
        self._entries.pop(identity, None)

    def __contains__(self, identity: str) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)
