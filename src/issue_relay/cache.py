"""Time-to-live cache used by the entity resolver."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger()

DEFAULT_TTL = 5 * 60.0


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading after which it is stale."""

    key: str
    value: Any
    expires_at: float


class TTLCache:
    """Keyed store whose entries expire after a fixed time-to-live.

    Expired entries are evicted lazily, when they are next read. There is no
    background sweep and no explicit invalidation; a ``set`` always replaces
    whatever was stored under the key before.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the cache.

        Args:
            clock: Callable returning the current time in seconds
        """
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """Return the live value for a key, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() < entry.expires_at:
            return entry.value
        logger.debug("Cache entry expired", key=key)
        del self._entries[key]
        return None

    def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL) -> None:
        """Store a value under a key for ``ttl`` seconds."""
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
