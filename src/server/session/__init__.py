"""SQLite-backed web session store with expiry and an HTTP admin router."""

from .base import SessionStoreProtocol
from .dependencies import get_session_store
from .errors import SessionDecodeError, SessionStoreError
from .models import SessionRecord, StoreOptions
from .store import SQLiteSessionStore

__all__ = [
    "SQLiteSessionStore",
    "SessionDecodeError",
    "SessionRecord",
    "SessionStoreError",
    "SessionStoreProtocol",
    "StoreOptions",
    "get_session_store",
]
