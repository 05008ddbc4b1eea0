import threading
import time

import pytest

from src.server.session.store import SQLiteSessionStore
from src.server.session.sweeper import Sweeper


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_sweeper_repeats_until_stopped():
    calls: list[int] = []
    sweeper = Sweeper(lambda: calls.append(1), 10, name="test-sweeper")
    sweeper.start()
    try:
        assert _wait_for(lambda: len(calls) >= 2)
    finally:
        sweeper.stop(timeout=1)

    assert not sweeper.running
    seen = len(calls)
    time.sleep(0.05)
    assert len(calls) == seen


def test_stop_does_not_wait_for_the_interval():
    fired = threading.Event()
    sweeper = Sweeper(fired.set, 60_000)
    sweeper.start()
    assert sweeper.running

    started = time.monotonic()
    sweeper.stop(timeout=1)

    assert time.monotonic() - started < 1
    assert not fired.is_set()
    assert not sweeper.running


def test_sweeper_thread_is_a_daemon():
    sweeper = Sweeper(lambda: None, 60_000, name="daemon-check")
    sweeper.start()
    try:
        thread = next(t for t in threading.enumerate() if t.name == "daemon-check")
        assert thread.daemon
    finally:
        sweeper.stop(timeout=1)


@pytest.mark.parametrize("interval", [0, -5])
def test_sweeper_rejects_non_positive_interval(interval):
    with pytest.raises(ValueError):
        Sweeper(lambda: None, interval)


def test_store_sweeper_deletes_expired_rows(db, clock):
    store = SQLiteSessionStore(db, cleanup_interval=20, clock=clock)
    try:
        with store._lock:
            db.execute("INSERT INTO server_sessions VALUES ('stale', ?, '{}')", (clock.now - 1,))
            db.execute("INSERT INTO server_sessions VALUES ('live', ?, '{}')", (clock.now + 60_000,))
            db.commit()

        def remaining():
            with store._lock:
                return {row[0] for row in db.execute("SELECT session_id FROM server_sessions")}

        assert _wait_for(lambda: remaining() == {"live"})
    finally:
        store._sweeper.stop(timeout=1)


def test_store_sweeper_survives_cleanup_failures(db, clock):
    store = SQLiteSessionStore(db, cleanup_interval=10, clock=clock)
    try:
        with store._lock:
            db.execute("DROP TABLE server_sessions")
            db.commit()
        time.sleep(0.1)
        assert store._sweeper.running
    finally:
        store._sweeper.stop(timeout=1)
