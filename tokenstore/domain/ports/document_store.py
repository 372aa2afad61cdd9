from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from tokenstore.domain.entities import DocumentStoreInfo


class DocumentStorePort(Protocol):
    async def get(self, doc_id: str) -> Optional[dict[str, Any]]:
        """
        Return the document stored under doc_id (including `_id` and `_rev`),
        or None if there is none. Raise StorageError on any other failure.
        """

    async def put(self, document: Mapping[str, Any]) -> str:
        """
        Write `document` under its `_id` and return the new revision.
        The write only succeeds if `_rev` matches the stored revision (or both
        are absent); otherwise raise RevisionConflict.
        """

    async def remove(self, doc_id: str) -> bool:
        """Delete by key regardless of revision. True if something was removed."""

    async def destroy(self) -> None:
        """Drop every document in this store."""

    async def info(self) -> DocumentStoreInfo:
        """Report store name and document count."""

    async def aclose(self) -> None:
        """Release the underlying connection."""
