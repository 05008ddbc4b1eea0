from __future__ import annotations

import asyncio
import json
import logging
import re
import sqlite3
import threading
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from .errors import SessionDecodeError, SessionStoreError
from .models import DEFAULT_TABLE, ONE_DAY_MS, SessionRecord, StoreOptions, now_ms
from .sweeper import Sweeper

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SQLiteSessionStore:
    """SQLite-backed store for web sessions with expiry.

    Rows live in a single table ``(session_id PRIMARY KEY, expires, data)``
    where ``expires`` is epoch milliseconds and ``data`` is the JSON-encoded
    session. A row is live while ``now <= expires``; expired rows are ignored
    by reads and removed by a daemon sweeper.

    ``db`` is used from worker threads and the sweeper thread, so it must be
    opened with ``check_same_thread=False``.

    Every public coroutine reports failure by raising :class:`SessionStoreError`.
    """

    def __init__(
        self,
        db: Optional[sqlite3.Connection],
        *,
        table: str = DEFAULT_TABLE,
        concurrent_db: bool = False,
        cleanup_interval: int = ONE_DAY_MS,
        include_expired: bool = False,
        clock: Callable[[], int] = now_ms,
        on_connect: Optional[Callable[[SQLiteSessionStore], None]] = None,
    ) -> None:
        if db is None:
            raise ValueError("SQLiteSessionStore requires a database connection")
        if not _IDENTIFIER.match(table or ""):
            raise ValueError(f"Invalid session table name: {table!r}")
        _ensure_shareable(db)
        self._db = db
        self._table = table
        self._concurrent_db = concurrent_db
        self._include_expired = include_expired
        self._clock = clock
        self._lock = threading.Lock()

        pragma = "PRAGMA journal_mode = wal; " if concurrent_db else ""
        with self._lock:
            self._db.executescript(
                f"{pragma}CREATE TABLE IF NOT EXISTS {table} (session_id PRIMARY KEY, expires, data)"
            )
        logger.info("Session store initialised on table %s (wal=%s)", table, concurrent_db)

        if on_connect is not None:
            on_connect(self)

        self.cleanup()
        self._sweeper = Sweeper(self.cleanup, cleanup_interval, name=f"session-sweeper-{table}")
        self._sweeper.start()

    @classmethod
    def from_options(cls, options: StoreOptions) -> SQLiteSessionStore:
        return cls(
            options.db,
            table=options.table,
            concurrent_db=options.concurrent_db,
            cleanup_interval=options.cleanup_interval,
            include_expired=options.include_expired,
            clock=options.clock,
            on_connect=options.on_connect,
        )

    @property
    def db(self) -> sqlite3.Connection:
        return self._db

    @property
    def table(self) -> str:
        return self._table

    @property
    def concurrent_db(self) -> bool:
        return self._concurrent_db

    async def __aenter__(self) -> SQLiteSessionStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop the sweeper. The database connection stays open."""
        await asyncio.to_thread(self._sweeper.stop)

    async def get(self, session_id: str) -> Optional[dict[str, Any]]:
        now = self._clock()
        row = await self._run(
            self._fetchone,
            f"SELECT session_id, expires, data FROM {self._table} WHERE session_id = ? AND ? <= expires",
            (session_id, now),
            action=f"read session {session_id}",
        )
        if row is None:
            return None
        return _decode(SessionRecord(*row))

    async def set(self, session_id: str, session: dict[str, Any]) -> None:
        now = self._clock()
        try:
            if not isinstance(session, Mapping):
                raise TypeError(f"session must be a mapping, got {type(session).__name__}")
            cookie = session.get("cookie") or {}
            if not isinstance(cookie, Mapping):
                raise TypeError("session cookie must be a mapping")
            max_age = cookie.get("maxAge")
            expires = now + int(max_age) if max_age else now + ONE_DAY_MS
            payload = json.dumps(session, default=_json_default)
        except (TypeError, ValueError, OverflowError, RecursionError) as exc:
            raise SessionStoreError(f"Cannot serialize session {session_id}: {exc}") from exc

        await self._run(
            self._execute,
            f"INSERT OR REPLACE INTO {self._table} VALUES (?, ?, ?)",
            (session_id, expires, payload),
            action=f"write session {session_id}",
        )

    async def destroy(self, session_id: str) -> None:
        await self._run(
            self._execute,
            f"DELETE FROM {self._table} WHERE session_id = ?",
            (session_id,),
            action=f"destroy session {session_id}",
        )

    async def all(self) -> list[dict[str, Any]]:
        if self._include_expired:
            query, params = f"SELECT session_id, expires, data FROM {self._table} ORDER BY rowid", ()
        else:
            query = f"SELECT session_id, expires, data FROM {self._table} WHERE ? <= expires ORDER BY rowid"
            params = (self._clock(),)
        rows = await self._run(self._fetchall, query, params, action="list sessions")
        return [_decode(SessionRecord(*row)) for row in rows]

    async def length(self) -> int:
        if self._include_expired:
            query, params = f"SELECT COUNT(*) FROM {self._table}", ()
        else:
            query, params = f"SELECT COUNT(*) FROM {self._table} WHERE ? <= expires", (self._clock(),)
        row = await self._run(self._fetchone, query, params, action="count sessions")
        return int(row[0])

    async def clear(self) -> None:
        await self._run(self._execute, f"DELETE FROM {self._table}", (), action="clear sessions")

    async def touch(self, session_id: str, session: Optional[dict[str, Any]]) -> bool:
        """Move the expiry of a live session to ``session["cookie"]["expires"]``.

        Sessions without a cookie expiry are left untouched. The liveness guard
        is checked against the stored expiry, so touching with a past value
        expires the session immediately.
        """
        cookie = session.get("cookie") if isinstance(session, Mapping) else None
        expires = cookie.get("expires") if isinstance(cookie, Mapping) else None
        if not expires:
            return True

        try:
            cookie_expires = to_epoch_ms(expires)
        except (TypeError, ValueError, OverflowError) as exc:
            raise SessionStoreError(f"Invalid cookie expiry for session {session_id}: {exc}") from exc

        now = self._clock()
        await self._run(
            self._execute,
            f"UPDATE {self._table} SET expires = ? WHERE session_id = ? AND ? <= expires",
            (cookie_expires, session_id, now),
            action=f"touch session {session_id}",
        )
        return True

    def cleanup(self) -> int:
        """Delete expired rows. Failures are logged and reported as zero removals."""
        now = self._clock()
        try:
            removed = self._execute(f"DELETE FROM {self._table} WHERE ? > expires", (now,))
        except Exception:  # noqa: BLE001
            logger.debug("Session cleanup failed on table %s", self._table, exc_info=True)
            return 0
        logger.debug("Removed %d expired sessions from %s", removed, self._table)
        return removed

    async def _run(self, func: Callable[..., Any], query: str, params: tuple, *, action: str) -> Any:
        try:
            return await asyncio.to_thread(func, query, params)
        except (sqlite3.Error, OverflowError) as exc:
            raise SessionStoreError(f"Failed to {action}: {exc}") from exc

    def _execute(self, query: str, params: tuple = ()) -> int:
        with self._lock:
            cursor = self._db.execute(query, params)
            self._db.commit()
            return cursor.rowcount

    def _fetchall(self, query: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            return self._db.execute(query, params).fetchall()

    def _fetchone(self, query: str, params: tuple = ()) -> Optional[tuple]:
        with self._lock:
            return self._db.execute(query, params).fetchone()


def to_epoch_ms(value: Any) -> int:
    """Convert a cookie expiry (datetime, epoch ms, or ISO-8601 string) to epoch ms."""
    if isinstance(value, bool):
        raise TypeError("cookie expiry cannot be a boolean")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = _parse_ts(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - _EPOCH) // timedelta(milliseconds=1)
    raise TypeError(f"unsupported cookie expiry type: {type(value).__name__}")


def _ensure_shareable(db: sqlite3.Connection) -> None:
    failures: list[sqlite3.ProgrammingError] = []

    def _select_one() -> None:
        try:
            db.execute("SELECT 1")
        except sqlite3.ProgrammingError as exc:
            failures.append(exc)

    worker = threading.Thread(target=_select_one, name="session-store-check")
    worker.start()
    worker.join()
    if failures:
        raise ValueError(
            "SQLiteSessionStore needs a connection usable from other threads "
            f"(sqlite3.connect(..., check_same_thread=False)): {failures[0]}"
        ) from failures[0]


def _decode(record: SessionRecord) -> dict[str, Any]:
    try:
        return json.loads(record.data)
    except (TypeError, ValueError, RecursionError) as exc:
        raise SessionDecodeError(f"Stored session {record.session_id} is not valid JSON") from exc


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _parse_ts(value: str) -> datetime:
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
