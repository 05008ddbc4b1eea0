from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from fastapi import Depends

from src.config.loader import get_bool_env, get_int_env, get_str_env

from .models import DEFAULT_TABLE, ONE_DAY_MS, StoreOptions
from .store import SQLiteSessionStore

logger = logging.getLogger(__name__)

_MEMORY = ":memory:"

_SESSION_STORE: Optional[SQLiteSessionStore] = None
_OWNS_CONNECTION = False


def resolve_db_path(db_path: str) -> str:
    if db_path == _MEMORY:
        return db_path
    path = Path(db_path)
    if not path.is_absolute():
        path = Path.cwd() / path
    if path.suffix != ".db":
        path = path.with_suffix(".db")
    return str(path)


def open_connection(db_path: str) -> sqlite3.Connection:
    """Open a connection that can be shared with worker threads."""
    if db_path != _MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(db_path, check_same_thread=False)


def load_store_options(db: sqlite3.Connection) -> StoreOptions:
    return StoreOptions(
        db=db,
        table=get_str_env("SESSION_TABLE", DEFAULT_TABLE) or DEFAULT_TABLE,
        concurrent_db=get_bool_env("SESSION_CONCURRENT_DB", False),
        cleanup_interval=get_int_env("SESSION_CLEANUP_INTERVAL_MS", ONE_DAY_MS),
        include_expired=get_bool_env("SESSION_INCLUDE_EXPIRED", False),
    )


def initialise_session_store() -> SQLiteSessionStore:
    """Create session store instance using configuration."""
    global _SESSION_STORE, _OWNS_CONNECTION
    if _SESSION_STORE is not None:
        return _SESSION_STORE

    db_path = resolve_db_path(get_str_env("SESSION_DB_PATH", "sessions.db") or "sessions.db")
    connection = open_connection(db_path)
    try:
        store = SQLiteSessionStore.from_options(load_store_options(connection))
    except Exception:
        connection.close()
        raise
    _SESSION_STORE = store
    _OWNS_CONNECTION = True
    logger.info("Initialised session store with DB path %s", db_path)
    return store


def set_session_store(store: Optional[SQLiteSessionStore]) -> None:
    """Register a store built by the caller, who keeps ownership of its connection."""
    global _SESSION_STORE, _OWNS_CONNECTION
    _SESSION_STORE = store
    _OWNS_CONNECTION = False


async def shutdown_session_store() -> None:
    """Stop the active store's sweeper; close its connection only if it was opened here."""
    global _SESSION_STORE, _OWNS_CONNECTION
    store, _SESSION_STORE = _SESSION_STORE, None
    owns_connection, _OWNS_CONNECTION = _OWNS_CONNECTION, False
    if store is None:
        return
    await store.close()
    if owns_connection:
        store.db.close()


def get_session_store(_: SQLiteSessionStore = Depends(initialise_session_store)) -> SQLiteSessionStore:
    if _SESSION_STORE is None:
        raise RuntimeError("Session store has not been initialised")
    return _SESSION_STORE
