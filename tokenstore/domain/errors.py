class TokenStoreError(Exception):
    """Base class for all token store errors."""

    pass


class InvalidArgument(TokenStoreError, ValueError):
    """A required argument is missing or malformed (caller bug)."""

    pass


class StorageError(TokenStoreError):
    """The document store is unavailable or rejected the operation."""

    pass


class RevisionConflict(StorageError):
    """Conditional write rejected: the stored revision moved on."""

    pass


class HashError(TokenStoreError):
    """Hashing or verifying a token failed."""

    pass
