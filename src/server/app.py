# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from src.server.session.dependencies import initialise_session_store, shutdown_session_store
from src.server.session.router import router as session_router

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    session_store = initialise_session_store()
    logger.info("Serving sessions from table %s", session_store.table)
    try:
        yield
    finally:
        await shutdown_session_store()


app = FastAPI(
    title="SQLite Session Store API",
    description="Inspect and maintain server-side web sessions",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(session_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
