from __future__ import annotations

import asyncio
import contextlib
import logging

from prometheus_fastapi_instrumentator import Instrumentator

from .core.config import settings
from .core.logging import configure_logging
from .services.overdue import overdue_monitor
from . import app as zelote_app

configure_logging()
logger = logging.getLogger(__name__)

app = zelote_app
instrumentator = Instrumentator()
_background_tasks: list[asyncio.Task] = []


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


@app.on_event("startup")
async def _metrics() -> None:
    instrumentator.instrument(app).expose(app)


@app.on_event("startup")
async def _start_overdue_monitor() -> None:
    if settings.OVERDUE_CHECK_INTERVAL_MIN <= 0:
        logger.info("overdue.monitor_disabled")
        return
    _background_tasks.append(asyncio.create_task(overdue_monitor()))


@app.on_event("shutdown")
async def _stop_background_tasks() -> None:
    for task in _background_tasks:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
    _background_tasks.clear()
