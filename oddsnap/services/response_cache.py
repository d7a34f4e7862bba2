import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Clock = Callable[[], float]


@dataclass(slots=True)
class CacheEntry:
    value: Any
    expires_at: float


class ResponseCache:
    """In-memory TTL cache for upstream responses.

    Entries are evicted lazily: an expired entry is dropped the next time it is
    read, there is no background sweep. One instance is meant to live for the
    whole process and be handed to every client that should share it.
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._data: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def now(self) -> float:
        return self._clock()

    def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._data[key]
            lock = self._locks.get(key)
            if lock is not None and not lock.locked():
                del self._locks[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._data[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def clear(self) -> None:
        self._data.clear()
        self._locks.clear()

    def get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def __len__(self) -> int:
        return len(self._data)
