"""Time-bounded cache for aggregation results."""

import threading
import time
from typing import Callable, Generic, Optional, TypeVar

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


class AggregationCache(Generic[V]):
    """Key to (timestamp, value) map with lazy TTL expiry.

    An entry older than ``ttl_seconds`` is treated as absent and removed on the
    next read. All access goes through a lock, so concurrent writers for the
    same key resolve as last-writer-wins.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, V]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            timestamp, value = entry
            if self._clock() - timestamp > self.ttl_seconds:
                del self._entries[key]
                return None

            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def clear(self, key: str) -> None:
        """Remove key; a missing key is not an error."""
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
