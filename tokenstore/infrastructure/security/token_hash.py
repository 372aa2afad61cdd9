from __future__ import annotations

import asyncio

from passlib.context import CryptContext
from passlib.exc import MissingBackendError

from tokenstore.domain.errors import HashError
from tokenstore.domain.ports.token_hasher import TokenHasherPort

# Changing this needs a migration plan for the hashes already stored.
TOKEN_HASH_ROUNDS = 10

_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_token(plain: str, *, rounds: int = TOKEN_HASH_ROUNDS) -> str:
    """
    Hash a token using bcrypt (salted, `rounds` cost factor).
    """
    try:
        return _ctx.hash(plain, rounds=rounds)
    except (ValueError, TypeError, MissingBackendError) as e:
        raise HashError(f"token hashing failed: {e}") from e


def verify_token(plain: str, token_hash: str) -> bool:
    """
    Verify a token against its bcrypt hash (safe timing).
    A hash passlib cannot identify raises HashError rather than returning False.
    """
    try:
        return _ctx.verify(plain, token_hash)
    except (ValueError, TypeError, MissingBackendError) as e:
        raise HashError(f"token verification failed: {e}") from e


class BcryptTokenHasher(TokenHasherPort):
    """bcrypt runs in a worker thread so the event loop keeps turning."""

    def __init__(self, *, rounds: int = TOKEN_HASH_ROUNDS) -> None:
        self._rounds = rounds

    async def hash(self, plaintext: str) -> str:
        return await asyncio.to_thread(hash_token, plaintext, rounds=self._rounds)

    async def compare(self, plaintext: str, hashed: str) -> bool:
        return await asyncio.to_thread(verify_token, plaintext, hashed)
