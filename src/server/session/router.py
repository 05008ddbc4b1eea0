from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .dependencies import get_session_store
from .errors import SessionStoreError
from .schemas import SessionListResponse, SessionPayload, SuccessResponse
from .store import SQLiteSessionStore

logger = logging.getLogger(__name__)

INTERNAL_SERVER_ERROR_DETAIL = "Internal Server Error"

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SessionStoreError:
        logger.exception("Session store failed to %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_SERVER_ERROR_DETAIL,
        )


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    count_only: bool = Query(default=False, description="Return only the number of sessions."),
    store: SQLiteSessionStore = Depends(get_session_store),
) -> SessionListResponse:
    with _store_errors("list sessions"):
        if count_only:
            return SessionListResponse(count=await store.length())
        sessions = await store.all()
    return SessionListResponse(count=len(sessions), sessions=sessions)


@router.delete("", response_model=SuccessResponse)
async def clear_sessions(store: SQLiteSessionStore = Depends(get_session_store)) -> SuccessResponse:
    with _store_errors("clear sessions"):
        await store.clear()
    return SuccessResponse(success=True)


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    store: SQLiteSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    with _store_errors("read session"):
        session = await store.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


@router.put("/{session_id}", response_model=SuccessResponse)
async def save_session(
    session_id: str,
    payload: SessionPayload,
    store: SQLiteSessionStore = Depends(get_session_store),
) -> SuccessResponse:
    with _store_errors("write session"):
        await store.set(session_id, payload.model_dump(mode="json", exclude_unset=True))
    return SuccessResponse(success=True)


@router.post("/{session_id}/touch", response_model=SuccessResponse)
async def touch_session(
    session_id: str,
    payload: SessionPayload,
    store: SQLiteSessionStore = Depends(get_session_store),
) -> SuccessResponse:
    with _store_errors("touch session"):
        touched = await store.touch(session_id, payload.model_dump(mode="json", exclude_unset=True))
    return SuccessResponse(success=touched)


@router.delete("/{session_id}", response_model=SuccessResponse)
async def destroy_session(
    session_id: str,
    store: SQLiteSessionStore = Depends(get_session_store),
) -> SuccessResponse:
    with _store_errors("destroy session"):
        await store.destroy(session_id)
    return SuccessResponse(success=True)
