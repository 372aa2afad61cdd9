from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from tokenstore.domain.entities import TokenRecord
from tokenstore.domain.errors import InvalidArgument, RevisionConflict, StorageError
from tokenstore.domain.ports.document_store import DocumentStorePort
from tokenstore.domain.ports.token_hasher import TokenHasherPort
from tokenstore.domain.ports.token_store import AuthResult, TokenStorePort
from tokenstore.infrastructure.redis_cache.document_store import RedisDocumentStore
from tokenstore.infrastructure.security.token_hash import BcryptTokenHasher
from tokenstore.schemas.options import StoreOptions
from tokenstore.settings import Settings, get_settings

logger = logging.getLogger(__name__)

OpenDocuments = Callable[[str, StoreOptions], Awaitable[DocumentStorePort]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _require(value: Any, name: str, operation: str) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidArgument(f"{operation} called with invalid parameters ({name})")


class TokenRecordStore(TokenStorePort):
    """
    Passwordless token store: one bcrypt-hashed token per user id, kept in a
    document store.

    The document store handle is opened lazily on first use and shared by
    every later call; clear() drops it so the next call reconnects.
    Overwrites are conditional on the stored revision, so two racing
    store_or_update calls for the same user cannot both win: the loser gets
    RevisionConflict and may retry.
    """

    def __init__(
        self,
        connection: str,
        options: Union[StoreOptions, Mapping[str, Any], None] = None,
        *,
        open_documents: Optional[OpenDocuments] = None,
        hasher: Optional[TokenHasherPort] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        if not isinstance(connection, str) or not connection:
            raise InvalidArgument("A valid connection string has to be provided")
        if options is None:
            options = StoreOptions()
        elif not isinstance(options, StoreOptions):
            try:
                options = StoreOptions.model_validate(dict(options))
            except (ValidationError, TypeError, ValueError) as e:
                raise InvalidArgument(f"invalid token store options: {e}") from e

        self.connection = connection
        self.options: StoreOptions = options
        self._open_documents = open_documents or RedisDocumentStore.open
        self._hasher: TokenHasherPort = hasher or BcryptTokenHasher()
        self._clock = clock or _now_ms
        self._db: Optional[DocumentStorePort] = None
        self._connect_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None
    ) -> "TokenRecordStore":
        settings = settings or get_settings()
        return cls(
            settings.redis_url,
            StoreOptions(
                key_prefix=settings.token_key_prefix,
                socket_timeout=settings.redis_socket_timeout_seconds,
            ),
        )

    async def _get_db(self) -> DocumentStorePort:
        if self._db is not None:
            return self._db
        # callers arriving while the first connect is pending wait for it
        async with self._connect_lock:
            if self._db is None:
                self._db = await self._open_documents(self.connection, self.options)
                logger.info(
                    "token store connected",
                    extra={"key_prefix": self.options.key_prefix},
                )
        return self._db

    def authenticate(self, token: str, uid: str) -> Awaitable[AuthResult]:
        _require(token, "token", "authenticate")
        _require(uid, "uid", "authenticate")
        return self._authenticate(token, uid)

    async def _authenticate(self, token: str, uid: str) -> AuthResult:
        db = await self._get_db()
        doc = await db.get(uid)
        if doc is None:
            return AuthResult(False, None)
        try:
            record = TokenRecord.from_document(doc)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"malformed token record for {uid!r}") from e
        if record.is_expired(self._clock()):
            return AuthResult(False, None)
        if await self._hasher.compare(token, record.hashed_token):
            return AuthResult(True, record.origin_url)
        return AuthResult(False, None)

    def store_or_update(
        self,
        token: str,
        uid: str,
        ttl_ms: int,
        origin_url: Optional[str] = None,
    ) -> Awaitable[None]:
        _require(token, "token", "store_or_update")
        _require(uid, "uid", "store_or_update")
        if isinstance(ttl_ms, bool) or not isinstance(ttl_ms, int) or ttl_ms <= 0:
            raise InvalidArgument(
                "store_or_update called with invalid parameters (ttl_ms)"
            )
        if origin_url is not None and not isinstance(origin_url, str):
            raise InvalidArgument(
                "store_or_update called with invalid parameters (origin_url)"
            )
        return self._store_or_update(token, uid, ttl_ms, origin_url)

    async def _store_or_update(
        self, token: str, uid: str, ttl_ms: int, origin_url: Optional[str]
    ) -> None:
        db = await self._get_db()
        hashed = await self._hasher.hash(token)
        record = TokenRecord(
            id=uid,
            hashed_token=hashed,
            expires_at=self._clock() + ttl_ms,
            origin_url=origin_url,
        )

        current = await db.get(uid)
        if current is not None:
            record = record.with_revision(current.get("_rev"))

        try:
            await db.put(record.to_document())
        except RevisionConflict:
            logger.warning("token update conflict", extra={"uid": uid})
            raise
        logger.info(
            "token stored",
            extra={
                "uid": uid,
                "expires_at": record.expires_at,
                "replaced": current is not None,
            },
        )

    def invalidate_user(self, uid: str) -> Awaitable[None]:
        _require(uid, "uid", "invalidate_user")
        return self._invalidate_user(uid)

    async def _invalidate_user(self, uid: str) -> None:
        db = await self._get_db()
        try:
            removed = await db.remove(uid)
        except StorageError:
            logger.warning("token invalidation failed", extra={"uid": uid})
            raise
        if removed:
            logger.info("token invalidated", extra={"uid": uid})

    async def clear(self) -> None:
        db = await self._get_db()
        try:
            await db.destroy()
        finally:
            await self._drop_db()
        logger.info("token store cleared")

    async def count(self) -> int:
        db = await self._get_db()
        info = await db.info()
        return info.doc_count

    async def aclose(self) -> None:
        await self._drop_db()

    async def _drop_db(self) -> None:
        db, self._db = self._db, None
        if db is None:
            return
        try:
            await db.aclose()
        except StorageError:
            logger.warning("closing document store failed", exc_info=True)
