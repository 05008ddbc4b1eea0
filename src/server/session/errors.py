class SessionStoreError(Exception):
    """Raised when a store operation fails at the database or input level."""


class SessionDecodeError(SessionStoreError):
    """Raised when a stored session payload cannot be decoded."""
