"""
In-process key-value store for the credential cache.
"""

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from shared.logging import get_logger


class MemoryStore:
    """Dict-backed store with per-key expiry and a low-frequency sweep.

    Expired keys are dropped when read. Keys that are never read again are
    dropped by ``sweep``, which runs at most once per ``cleanup_interval``
    when triggered through ``maybe_sweep``.
    """

    def __init__(
        self,
        cleanup_interval: float = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.cleanup_interval = cleanup_interval
        self.logger = get_logger("registry_auth.cache.memory")
        self._clock = clock
        self._data: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: float) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    async def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._last_cleanup = self._clock()

    async def close(self) -> None:
        await self.clear()

    async def health_check(self) -> bool:
        return True

    def sweep(self) -> int:
        """Evict every expired key and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._data.items() if now >= expires_at]
            for key in expired:
                del self._data[key]
            self._last_cleanup = now
        return len(expired)

    def maybe_sweep(self) -> int:
        """Sweep if ``cleanup_interval`` has elapsed since the last sweep."""
        if self._clock() - self._last_cleanup < self.cleanup_interval:
            return 0

        removed = self.sweep()
        self.logger.info("Swept expired credential cache entries", removed=removed, remaining=len(self))
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
