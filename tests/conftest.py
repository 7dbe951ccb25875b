import json
from typing import Any, List, Tuple

import pytest

from ratelimit import FixedWindowRateLimiter
from relay import Relay


class RecordingChannel:
    def __init__(self) -> None:
        self.frames: List[str] = []

    def deliver(self, frame: str) -> None:
        self.frames.append(frame)

    @property
    def events(self) -> List[Tuple[str, Any]]:
        return [(msg["event"], msg["data"]) for msg in map(json.loads, self.frames)]

    def named(self, event: str) -> List[Any]:
        return [data for name, data in self.events if name == event]

    def clear(self) -> None:
        self.frames.clear()


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def relay(clock):
    return Relay(limiter=FixedWindowRateLimiter(window=1.0, max_events=10, clock=clock))


@pytest.fixture
def channel_factory():
    return RecordingChannel
