import asyncio
from typing import Any, Mapping, Optional

from tokenstore.domain.entities import DocumentStoreInfo
from tokenstore.domain.errors import HashError, RevisionConflict


class FakeDocumentStore:
    """
    In-memory document store with the same revision rules as the Redis one.
    get() snapshots before yielding, so two concurrent writers can both read
    the same revision and race on put().
    """

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None
        self.fail_close: Optional[Exception] = None
        self.destroyed = 0
        self.closed = 0
        self.calls: list[str] = []
        self._rev = 0

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.fail_with is not None:
            raise self.fail_with

    async def get(self, doc_id: str) -> Optional[dict[str, Any]]:
        self._check("get")
        doc = self.docs.get(doc_id)
        snapshot = dict(doc) if doc is not None else None
        await asyncio.sleep(0)
        return snapshot

    async def put(self, document: Mapping[str, Any]) -> str:
        self._check("put")
        doc_id = document["_id"]
        current = self.docs.get(doc_id)
        if (current or {}).get("_rev") != document.get("_rev"):
            raise RevisionConflict(f"document {doc_id!r} update conflict")
        self._rev += 1
        rev = f"{self._rev}-fake"
        self.docs[doc_id] = {**document, "_rev": rev}
        return rev

    async def remove(self, doc_id: str) -> bool:
        self._check("remove")
        return self.docs.pop(doc_id, None) is not None

    async def destroy(self) -> None:
        self._check("destroy")
        self.docs.clear()
        self.destroyed += 1

    async def info(self) -> DocumentStoreInfo:
        self._check("info")
        return DocumentStoreInfo(db_name="fake", doc_count=len(self.docs))

    async def aclose(self) -> None:
        self.closed += 1
        if self.fail_close is not None:
            raise self.fail_close


class FakeOpener:
    def __init__(self, docs: FakeDocumentStore) -> None:
        self.docs = docs
        self.calls: list[tuple[str, Any]] = []

    async def __call__(self, connection: str, options) -> FakeDocumentStore:
        self.calls.append((connection, options))
        await asyncio.sleep(0)
        return self.docs


class FakeHasher:
    def __init__(self) -> None:
        self.fail_hash = False
        self.fail_compare = False

    async def hash(self, plaintext: str) -> str:
        if self.fail_hash:
            raise HashError("hash backend down")
        return "hashed-" + plaintext

    async def compare(self, plaintext: str, hashed: str) -> bool:
        if self.fail_compare:
            raise HashError("compare backend down")
        return hashed == "hashed-" + plaintext


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms
