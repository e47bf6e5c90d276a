"""Controllable clock for lifetime tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional


class FakeClock:
    """Callable returning a fixed UTC time that tests move forward explicitly."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now
