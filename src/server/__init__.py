# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""HTTP surface for the SQLite session store.

``app`` is resolved lazily so importing the store does not build the FastAPI
application or read ``.env``.
"""

from typing import TYPE_CHECKING

from .session import SQLiteSessionStore, SessionStoreError

__all__ = ["SQLiteSessionStore", "SessionStoreError", "app"]

if TYPE_CHECKING:  # pragma: no cover
    from .app import app


def __getattr__(name: str):
    if name != "app":
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from .app import app as session_app

    return session_app
