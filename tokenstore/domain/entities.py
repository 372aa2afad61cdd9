from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class TokenRecord:
    """
    One stored token per user. `id` doubles as the document key and
    `revision` is whatever the document store handed back on the last write
    (None until the record has been inserted once).
    """

    id: str
    hashed_token: str
    expires_at: int  # epoch milliseconds
    origin_url: str | None = None
    revision: str | None = None

    def __repr__(self) -> str:
        # keep the hash out of logs and tracebacks
        return (
            f"TokenRecord(id={self.id!r}, expires_at={self.expires_at!r}, "
            f"origin_url={self.origin_url!r}, revision={self.revision!r})"
        )

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at < now_ms

    def with_revision(self, revision: str | None) -> TokenRecord:
        return replace(self, revision=revision)

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "_id": self.id,
            "hashedToken": self.hashed_token,
            "expiresAt": self.expires_at,
        }
        if self.origin_url is not None:
            doc["originUrl"] = self.origin_url
        if self.revision is not None:
            doc["_rev"] = self.revision
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> TokenRecord:
        return cls(
            id=str(doc["_id"]),
            hashed_token=str(doc["hashedToken"]),
            expires_at=int(doc["expiresAt"]),
            origin_url=doc.get("originUrl"),
            revision=doc.get("_rev"),
        )


@dataclass(frozen=True)
class DocumentStoreInfo:
    db_name: str
    doc_count: int
