"""Admissions Analytics — Lookup Cache.

In-process cache for upstream lookups (geocoding, census, campus lists).
Each service owns its own instance; nothing is shared through module state.
"""

import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

_MISSING = object()


def make_key(*parts: Any) -> Tuple[Hashable, ...]:
    """Normalized request signature.

    Strings are trimmed, lower-cased and whitespace-collapsed; floats are
    rounded to 6 places so equivalent coordinates share an entry.
    """
    key = []
    for part in parts:
        if isinstance(part, str):
            key.append(" ".join(part.lower().split()))
        elif isinstance(part, float):
            key.append(round(part, 6))
        else:
            key.append(part)
    return tuple(key)


class LookupCache:
    """Key/value cache with an optional TTL. ``ttl_seconds=None`` never expires."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: Dict[Hashable, Tuple[float, Any]] = {}

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds is not None and self._clock() - stored_at > self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return default
        stored_at, value = entry
        if self._expired(stored_at):
            self._store.pop(key, None)
            return default
        return value

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: Hashable, value: Any) -> None:
        self._store[key] = (self._clock(), value)

    def pop(self, key: Hashable) -> None:
        self._store.pop(key, None)

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        stale = [
            k for k, (stored_at, _) in list(self._store.items()) if self._expired(stored_at)
        ]
        for k in stale:
            del self._store[k]
        return len(stale)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
