"""Injectable clock.

Services take a Clock instead of calling ``datetime.now()`` so that
business-hour and trailing-window rules can be tested deterministically.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta
from typing import Optional


class Clock(ABC):
    """Abstract clock interface. ``now()`` is always timezone-aware UTC."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        pass


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock(Clock):
    """Test clock that returns a controlled time until moved."""

    def __init__(self, fixed_time: Optional[datetime] = None):
        self._now = ensure_utc(fixed_time or datetime(2024, 1, 15, 0, 0, tzinfo=UTC))

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = ensure_utc(time)

    def advance(self, **kwargs) -> datetime:
        """Advance by a timedelta given as keyword args, e.g. ``hours=1``."""
        self._now = self._now + timedelta(**kwargs)
        return self._now


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
