from __future__ import annotations

from typing import Awaitable, NamedTuple, Optional, Protocol


class AuthResult(NamedTuple):
    valid: bool
    origin_url: Optional[str] = None


class TokenStorePort(Protocol):
    """
    Capability contract expected by a passwordless login flow.

    Argument checks happen when the method is called and raise
    InvalidArgument right away; everything else is reported by the
    returned awaitable.
    """

    def authenticate(self, token: str, uid: str) -> Awaitable[AuthResult]:
        """
        Check token against the one stored for uid. Unknown uid, expired
        record and wrong token all give AuthResult(False, None).
        """

    def store_or_update(
        self, token: str, uid: str, ttl_ms: int, origin_url: Optional[str] = None
    ) -> Awaitable[None]:
        """Replace uid's token; it stays valid for ttl_ms milliseconds."""

    def invalidate_user(self, uid: str) -> Awaitable[None]:
        """Remove uid's token. A missing token is not an error."""

    def clear(self) -> Awaitable[None]:
        """Remove every token."""

    def count(self) -> Awaitable[int]:
        """Number of stored tokens, expired ones included."""
