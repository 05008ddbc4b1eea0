import sqlite3


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def stored_expiry(connection: sqlite3.Connection, session_id: str, table: str = "server_sessions"):
    row = connection.execute(f"SELECT expires FROM {table} WHERE session_id = ?", (session_id,)).fetchone()
    return row[0] if row else None
