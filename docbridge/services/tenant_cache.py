"""
Time-bounded cache for tenant lookups.

Tenant documents are read on almost every storefront and dashboard
request. The cache is an explicit object passed to the lookup functions,
so each app (or test) owns its instance and its lifetime.
"""

import copy
import time
from typing import Any, Callable, Dict, Optional, Tuple

from docbridge.config import settings


class TenantCache:
    """
    Key -> value store whose entries expire ttl_seconds after being set.

    Values are copied on the way in and on the way out, so callers may
    mutate what they get back. Expired entries are dropped on read and
    pruned on every set(). Not thread-safe; share one instance per event
    loop.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds is None:
            ttl_seconds = settings.TENANT_CACHE_TTL_SECONDS
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at >= self.ttl_seconds

    def _prune(self) -> None:
        now = self._clock()
        for key in [k for k, (stored_at, _) in self._entries.items() if self._expired(stored_at, now)]:
            del self._entries[key]

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._expired(stored_at, self._clock()):
            del self._entries[key]
            return None
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        self._prune()
        self._entries[key] = (self._clock(), copy.deepcopy(value))

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        """Number of live (unexpired) entries."""
        now = self._clock()
        return sum(1 for stored_at, _ in self._entries.values() if not self._expired(stored_at, now))
