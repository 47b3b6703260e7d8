# pickboard/main.py
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from pickboard.core.config import Settings, load_settings
from pickboard.core.db import init_engine
from pickboard.core.persist import SqlRepository
from pickboard.core.repository import MemoryRepository, Repository
from pickboard.jobs.ingestion import RunController, build_controller
from pickboard.routers import ingest_routes

logger = logging.getLogger("pickboard")


# ------------ Access log middleware ------------
class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        t0 = time.perf_counter()
        try:
            response = await call_next(request)
            status = response.status_code
        except Exception:
            status = 500
            raise
        finally:
            dt = (time.perf_counter() - t0) * 1000
            logger.info(
                "ACCESS %s %s q=%s -> %s in %.1fms",
                request.method,
                request.url.path,
                request.url.query,
                status,
                dt,
            )
        return response


def _start_scheduler(settings: Settings, controller: RunController) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        controller.scheduled_tick,
        trigger=CronTrigger.from_crontab(settings.cron_schedule, timezone="UTC"),
        id="pick_ingestion",
        name="Expert pick ingestion",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Scheduler started cron=%r", settings.cron_schedule)
    return scheduler


def create_app(
    settings: Optional[Settings] = None,
    repo: Optional[Repository] = None,
    controller: Optional[RunController] = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        store = repo
        if store is None:
            if settings.database_url:
                engine = init_engine(settings.database_url)
                store = SqlRepository(engine)
                await store.ensure_schema()
            else:
                logger.warning("DATABASE_URL not set; DB layer disabled, using in-memory store")
                store = MemoryRepository()

        ctl = controller or build_controller(settings, store)
        app.state.settings = settings
        app.state.repo = store
        app.state.controller = ctl

        scheduler = _start_scheduler(settings, ctl) if settings.scheduler_enabled else None
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            if engine is not None:
                await engine.dispose()

    app = FastAPI(
        title="Pickboard API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(AccessLogMiddleware)

    # ------------ CORS (open; can tighten later) ------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------ Global error handler ------------
    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("UNHANDLED ERROR: %s %s", request.method, request.url)
        return JSONResponse(status_code=500, content={"error": "internal_error"})

    app.include_router(ingest_routes.router)
    return app


app = create_app()
