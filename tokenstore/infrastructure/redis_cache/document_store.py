from __future__ import annotations

import logging
import secrets
from typing import Any, Mapping, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from tokenstore.domain.entities import DocumentStoreInfo
from tokenstore.domain.errors import RevisionConflict, StorageError
from tokenstore.domain.ports.document_store import DocumentStorePort
from tokenstore.infrastructure.redis_cache.pool import open_redis
from tokenstore.schemas.options import StoreOptions

logger = logging.getLogger(__name__)


_LUA_PUT = """
-- KEYS[1]: document key
-- KEYS[2]: id index
-- ARGV[1]: document id
-- ARGV[2]: expected revision ('' for a first insert)
-- ARGV[3]: new revision
-- ARGV[4..n]: field/value pairs
local cur = redis.call('HGET', KEYS[1], '_rev')
if (cur or '') ~= ARGV[2] then
  return 0
end
redis.call('DEL', KEYS[1])
redis.call('HSET', KEYS[1], '_rev', ARGV[3], unpack(ARGV, 4))
redis.call('SADD', KEYS[2], ARGV[1])
return 1
"""

_LUA_REMOVE = """
-- KEYS[1]: document key
-- KEYS[2]: id index
-- ARGV[1]: document id
local n = redis.call('DEL', KEYS[1])
redis.call('SREM', KEYS[2], ARGV[1])
return n
"""

_LUA_DESTROY = """
-- KEYS[1]: id index
-- ARGV[1]: document key prefix
local ids = redis.call('SMEMBERS', KEYS[1])
for _, id in ipairs(ids) do
  redis.call('DEL', ARGV[1] .. id)
end
redis.call('DEL', KEYS[1])
return #ids
"""


def _next_revision(current: Optional[str]) -> str:
    """Revisions look like '<generation>-<random hex>'."""
    generation = 0
    if current:
        try:
            generation = int(current.split("-", 1)[0])
        except ValueError:
            raise RevisionConflict(f"malformed revision {current!r}") from None
    return f"{generation + 1}-{secrets.token_hex(16)}"


class RedisDocumentStore(DocumentStorePort):
    """
    Flat documents kept as Redis hashes under `{prefix}doc:{id}`, plus a set
    `{prefix}ids` listing every stored id. Field values come back as str.

    Assumes a single Redis server: the destroy script derives document keys
    from the id index instead of receiving them in KEYS, which Redis Cluster
    does not allow.
    """

    def __init__(self, redis: Redis, *, key_prefix: str = "pwdless:") -> None:
        self._redis = redis
        self._prefix = key_prefix

    @classmethod
    async def open(
        cls, connection: str, options: StoreOptions
    ) -> "RedisDocumentStore":
        redis = await open_redis(connection, socket_timeout=options.socket_timeout)
        return cls(redis, key_prefix=options.key_prefix)

    def _doc_prefix(self) -> str:
        return f"{self._prefix}doc:"

    def _key(self, doc_id: str) -> str:
        return f"{self._doc_prefix()}{doc_id}"

    def _index_key(self) -> str:
        return f"{self._prefix}ids"

    async def get(self, doc_id: str) -> Optional[dict[str, Any]]:
        try:
            stored = await self._redis.hgetall(self._key(doc_id))
        except RedisError as e:
            raise StorageError(f"get {doc_id!r} failed: {e}") from e
        if not stored:
            return None
        return {"_id": doc_id, **stored}

    async def put(self, document: Mapping[str, Any]) -> str:
        doc_id = document.get("_id")
        if not doc_id:
            raise StorageError("document has no _id")
        expected = document.get("_rev") or ""
        new_rev = _next_revision(expected)

        fields: list[str] = []
        for name, value in document.items():
            if name in ("_id", "_rev") or value is None:
                continue
            fields.extend((name, str(value)))

        try:
            ok = await self._redis.eval(
                _LUA_PUT,
                2,
                self._key(doc_id),
                self._index_key(),
                doc_id,
                expected,
                new_rev,
                *fields,
            )
        except RedisError as e:
            raise StorageError(f"put {doc_id!r} failed: {e}") from e
        if int(ok) != 1:
            raise RevisionConflict(f"document {doc_id!r} update conflict")
        return new_rev

    async def remove(self, doc_id: str) -> bool:
        try:
            n = await self._redis.eval(
                _LUA_REMOVE, 2, self._key(doc_id), self._index_key(), doc_id
            )
        except RedisError as e:
            raise StorageError(f"remove {doc_id!r} failed: {e}") from e
        return int(n) > 0

    async def destroy(self) -> None:
        try:
            n = await self._redis.eval(
                _LUA_DESTROY, 1, self._index_key(), self._doc_prefix()
            )
        except RedisError as e:
            raise StorageError(f"destroy failed: {e}") from e
        logger.info(
            "document store destroyed",
            extra={"db_name": self._prefix, "removed": int(n)},
        )

    async def info(self) -> DocumentStoreInfo:
        try:
            count = await self._redis.scard(self._index_key())
        except RedisError as e:
            raise StorageError(f"info failed: {e}") from e
        return DocumentStoreInfo(db_name=self._prefix, doc_count=int(count))

    async def aclose(self) -> None:
        try:
            await self._redis.aclose()
        except RedisError as e:
            raise StorageError(f"close failed: {e}") from e
