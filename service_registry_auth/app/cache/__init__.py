"""
Cache package for the registry auth adaptor.

Holds, per username, a credential proof and the teams resolved on the last
successful upstream lookup:

- credential_cache: CredentialCache and CacheEntry
- memory_store: in-process backend with a periodic expiry sweep
- redis_store: Redis backend, expiry delegated to Redis
- hashing: bcrypt and plaintext verification strategies
"""

from .credential_cache import CacheEntry, CredentialCache, KeyValueStore
from .hashing import BcryptHasher, PasswordHasher, PlaintextHasher, get_hasher
from .memory_store import MemoryStore
from .redis_store import RedisStore

__all__ = [
    "CacheEntry",
    "CredentialCache",
    "KeyValueStore",
    "BcryptHasher",
    "PasswordHasher",
    "PlaintextHasher",
    "get_hasher",
    "MemoryStore",
    "RedisStore",
]
