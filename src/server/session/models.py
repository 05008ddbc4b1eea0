from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .store import SQLiteSessionStore

ONE_DAY_MS = 86_400_000
DEFAULT_TABLE = "server_sessions"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class SessionRecord:
    session_id: str
    expires: int
    data: str


@dataclass(slots=True)
class StoreOptions:
    """Construction options for :class:`SQLiteSessionStore`.

    ``db`` must be opened with ``check_same_thread=False``.

    ``include_expired`` restores the legacy listing behaviour where ``all()``
    and ``length()`` also report rows past their expiry.
    """

    db: sqlite3.Connection
    table: str = DEFAULT_TABLE
    concurrent_db: bool = False
    cleanup_interval: int = ONE_DAY_MS
    include_expired: bool = False
    clock: Callable[[], int] = now_ms
    on_connect: Optional[Callable[["SQLiteSessionStore"], None]] = None
