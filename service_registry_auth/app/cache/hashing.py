"""
Password verification strategies for cached credentials.
"""

import asyncio
import base64
import hashlib
import hmac
from typing import Protocol

import bcrypt


class PasswordHasher(Protocol):
    """Derives and checks the credential proof stored with a cache entry."""

    async def hash(self, password: str) -> str:
        ...

    async def verify(self, password: str, proof: str) -> bool:
        ...


def _prehash(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes of its input
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


class BcryptHasher:
    """Salted bcrypt proofs. Hashing runs in a worker thread."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def _hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")

    def _verify(self, password: str, proof: str) -> bool:
        try:
            return bcrypt.checkpw(_prehash(password), proof.encode("utf-8"))
        except ValueError:
            # Not a bcrypt hash, e.g. written while hashing was disabled
            return False

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(self._hash, password)

    async def verify(self, password: str, proof: str) -> bool:
        return await asyncio.to_thread(self._verify, password, proof)


class PlaintextHasher:
    """Stores the password as is and compares in constant time."""

    async def hash(self, password: str) -> str:
        return password

    async def verify(self, password: str, proof: str) -> bool:
        return hmac.compare_digest(password.encode("utf-8"), proof.encode("utf-8"))


def get_hasher(hash_password: bool) -> PasswordHasher:
    """Pick the verification strategy once, at construction."""
    return BcryptHasher() if hash_password else PlaintextHasher()
