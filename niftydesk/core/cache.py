"""Single-slot in-memory TTL cache used by the dashboard services."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default wall clock for services and caches."""
    return datetime.now(timezone.utc)


class TTLCache(Generic[T]):
    """Holds at most one value together with the time it was stored.

    Storing replaces the previous entry wholesale. Reads never mutate the
    entry, so a stale value stays available to callers that want a degraded
    answer after a failed refresh.
    """

    def __init__(self, ttl_seconds: float, clock: Clock = utc_now) -> None:
        """
        Args:
            ttl_seconds (float): Validity window of a stored entry.
            clock (Clock): Returns the current tz-aware time.
        """
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._value: Optional[T] = None
        self._stored_at: Optional[datetime] = None

    @property
    def value(self) -> Optional[T]:
        """The stored value regardless of age."""
        return self._value

    @property
    def stored_at(self) -> Optional[datetime]:
        return self._stored_at

    def age(self) -> Optional[timedelta]:
        if self._stored_at is None:
            return None
        return self._clock() - self._stored_at

    def is_fresh(self) -> bool:
        """True if an entry exists and is younger than the TTL."""
        age = self.age()
        return self._value is not None and age is not None and age < self.ttl

    def get_fresh(self) -> Optional[T]:
        return self._value if self.is_fresh() else None

    def set(self, value: T) -> None:
        self._value = value
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._value = None
        self._stored_at = None
