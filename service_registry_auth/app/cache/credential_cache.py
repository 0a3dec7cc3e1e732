"""
Credential cache keeping resolved teams per username.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

from shared.errors import CacheError
from shared.logging import get_logger
from .hashing import PasswordHasher, PlaintextHasher


class KeyValueStore(Protocol):
    """Backend contract shared by MemoryStore and RedisStore."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl: float) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def clear(self) -> None:
        ...

    async def close(self) -> None:
        ...

    def maybe_sweep(self) -> int:
        ...

    async def health_check(self) -> bool:
        ...


@dataclass(frozen=True)
class CacheEntry:
    """Cached outcome of one successful upstream resolution."""
    credential_proof: str
    teams: List[str] = field(default_factory=list)
    expires_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_json(self) -> str:
        return json.dumps({
            "password": self.credential_proof,
            "teams": list(self.teams),
            "expires_at": self.expires_at,
        })

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        data: Dict[str, Any] = json.loads(raw)
        teams = data["teams"]
        if not isinstance(teams, list) or not all(isinstance(t, str) for t in teams):
            raise ValueError("teams must be a list of strings")
        return cls(
            credential_proof=str(data["password"]),
            teams=teams,
            expires_at=float(data["expires_at"]),
        )


class CredentialCache:
    """Per-username cache of hashed credentials and authorized teams.

    Entries are only served after the supplied password verifies against
    the stored proof, so a password change always falls through to upstream.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        hasher: Optional[PasswordHasher] = None,
        ttl: float = 7 * 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
        logger=None,
    ):
        self.backend = backend
        self.hasher = hasher or PlaintextHasher()
        self.ttl = ttl
        self.logger = logger or get_logger("registry_auth.cache")
        self._clock = clock

    async def lookup(self, username: str) -> Optional[CacheEntry]:
        """Return the live entry for ``username``, or None when absent or expired.

        Raises CacheError when the backend cannot be read. Unreadable entries
        are discarded and reported as absent.
        """
        raw = await self.backend.get(username)
        if not raw:
            return None

        try:
            entry = CacheEntry.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning("Discarding corrupt cache entry", user=username, error=str(e))
            await self._evict(username)
            return None

        if entry.is_expired(self._clock()):
            self.logger.debug("Cache entry expired", user=username)
            await self._evict(username)
            return None

        return entry

    async def verify(self, entry: CacheEntry, password: str) -> bool:
        """Check ``password`` against the entry's credential proof."""
        return await self.hasher.verify(password, entry.credential_proof)

    async def store(
        self,
        username: str,
        password: str,
        teams: List[str],
        ttl: Optional[float] = None,
    ) -> CacheEntry:
        """Hash ``password`` and persist ``teams`` for ``username``, replacing any prior entry."""
        ttl = self.ttl if ttl is None else ttl
        entry = CacheEntry(
            credential_proof=await self.hasher.hash(password),
            teams=list(teams),
            expires_at=self._clock() + ttl,
        )
        await self.backend.set(username, entry.to_json(), ttl)
        return entry

    async def clear(self) -> None:
        """Drop every entry."""
        await self.backend.clear()

    def housekeeping(self) -> int:
        """Run the backend's periodic sweep when due."""
        return self.backend.maybe_sweep()

    async def health_check(self) -> bool:
        return await self.backend.health_check()

    async def close(self) -> None:
        await self.backend.close()

    async def _evict(self, username: str) -> None:
        try:
            await self.backend.delete(username)
        except CacheError as e:
            self.logger.warning("Failed to evict cache entry", user=username, error=e.message)
