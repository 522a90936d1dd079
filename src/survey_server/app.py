"""FastAPI application for the survey engine.

    create_app(settings)
      ├── lifespan: redis client → SurveyCache → SurveyReader → SurveyService
      ├── CORS
      ├── SurveyError → {"detail": ...} with the error's status code
      ├── /health   database and cache readiness
      └── /api/v1   admin surveys, admin results, respondent surveys

``cli()`` backs the ``survey-server`` console script.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from survey_db.engine import dispose_engine, get_engine, get_session_factory
from survey_core.cache import SurveyCache
from survey_core.errors import SurveyError
from survey_core.reader import SurveyReader
from survey_core.service import SurveyService

from survey_server.config import ServerSettings, load_settings
from survey_server.errors import generic_error_handler, survey_error_handler
from survey_server.routes import register_routes

logger = logging.getLogger(__name__)


def _connect_cache(settings: ServerSettings) -> redis.Redis | None:
    if not settings.redis_url:
        logger.warning("REDIS_URL is empty; every survey read goes to the database")
        return None
    logger.info("Survey snapshots cached in Redis")
    return redis.from_url(settings.redis_url)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service on startup; release Redis and the DB pool on shutdown."""
    client = _connect_cache(app.state.settings)
    reader = SurveyReader(
        SurveyCache(client) if client is not None else None,
        get_session_factory(),
    )
    app.state.redis = client
    app.state.service = SurveyService(reader)

    yield

    if client is not None:
        await client.aclose()
    await dispose_engine()
    logger.info("Survey server shut down")


async def health(request: Request) -> dict:
    """Readiness probe.  The cache is optional, so only the database decides ``status``."""
    report = {"status": "ok", "database": "ok", "cache": "disabled"}
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Health check: database unreachable: %s", exc)
        report["status"] = report["database"] = "error"

    client: redis.Redis | None = getattr(request.app.state, "redis", None)
    if client is not None:
        try:
            await client.ping()
            report["cache"] = "ok"
        except redis.RedisError as exc:
            logger.warning("Health check: cache unreachable: %s", exc)
            report["cache"] = "error"
    return report


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Survey API Server",
        description="Survey authoring, submission and statistics",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SurveyError, survey_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    app.add_api_route("/health", health, methods=["GET"])
    register_routes(app)
    return app


# ASGI export for ``uvicorn survey_server.app:app``
app = create_app()


def cli() -> None:
    """Console-script entry point: ``survey-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "survey_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
