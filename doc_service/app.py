"""FastAPI entry point for the document service.

The app hosts the inbox poller and the index synchronizer as background tasks
for the lifetime of the process and exposes health probes.

Endpoints:
- GET  /liveness   — Process is up
- GET  /readiness  — DB connectivity (503 when down), search engine health
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from doc_service.config import LOG_LEVEL, SERVICE_VERSION
from doc_service.db import check_db_connection, close_pool, get_pool
from doc_service.logging_config import setup_logging
from doc_service.models import HealthResponse
from doc_service.workers import Workers, build_workers

logger = logging.getLogger(__name__)

_SHUTDOWN_GRACE_SECONDS = 30


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the background loops on startup, stop them on shutdown."""
    setup_logging(level=LOG_LEVEL)
    await get_pool()

    workers = build_workers()
    stop = asyncio.Event()
    task = asyncio.create_task(workers.run(stop), name="doc-service-workers")
    app.state.workers = workers
    logger.info("Document service started")
    try:
        yield
    finally:
        stop.set()
        try:
            await asyncio.wait_for(task, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            logger.warning("Background loops did not stop within %ss; cancelling", _SHUTDOWN_GRACE_SECONDS)
        except Exception:
            logger.exception("Background loops exited with an error")
        await workers.aclose()
        await close_pool()
        logger.info("Document service stopped")


app = FastAPI(
    title="Document Ingestion Service",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# -- Health -------------------------------------------------------------------


@app.get("/liveness", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    return HealthResponse(status="ok", version=SERVICE_VERSION)


@app.get("/readiness", response_model=HealthResponse)
async def readiness() -> HealthResponse:
    db_ok = await check_db_connection()
    if not db_ok:
        raise HTTPException(status_code=503, detail="Database unavailable")
    workers: Workers | None = getattr(app.state, "workers", None)
    if workers is not None and not await workers.search.is_healthy():
        return HealthResponse(status="degraded", version=SERVICE_VERSION, error="Search engine unavailable")
    return HealthResponse(status="ok", version=SERVICE_VERSION)
