import asyncio
import sqlite3

import pytest

from src.server.session.store import SQLiteSessionStore
from tests.utils.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock(1_700_000_000_000)


@pytest.fixture
def db(tmp_path):
    connection = sqlite3.connect(str(tmp_path / "sessions.db"), check_same_thread=False)
    yield connection
    connection.close()


@pytest.fixture
def store(db, clock):
    session_store = SQLiteSessionStore(db, clock=clock)
    yield session_store
    asyncio.run(session_store.close())
