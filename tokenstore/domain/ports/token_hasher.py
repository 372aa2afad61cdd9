from typing import Protocol


class TokenHasherPort(Protocol):
    async def hash(self, plaintext: str) -> str:
        """Salted one-way hash of plaintext. Raise HashError on failure."""

    async def compare(self, plaintext: str, hashed: str) -> bool:
        """True if plaintext matches hashed. Raise HashError if it cannot tell."""
