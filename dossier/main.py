"""FastAPI application factory with lifespan events."""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
import structlog
from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dossier.agent.graph import SearchDependencies
from dossier.agent.tools.tavily_search import TavilySearchBackend
from dossier.api.dependencies import set_neo4j_conn, set_profile_service, set_redis, set_sessions
from dossier.api.router import api_router
from dossier.config import get_settings
from dossier.graph_db.connection import Neo4jConnection
from dossier.graph_db.schema import init_schema
from dossier.models.llm_registry import LLMRegistry
from dossier.models.model_router import ModelRouter
from dossier.services.profile_assembler import ProfileAssembler
from dossier.services.profile_repository import ProfileRepository
from dossier.services.profile_service import ProfileService
from dossier.services.session_registry import SessionRegistry
from dossier.services.session_store import RedisSessionStore
from dossier.utils.exceptions import (
    InvalidSubjectError,
    ProfileNotFoundError,
    ProfileStoreError,
    SessionNotFoundError,
)
from dossier.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    # Neo4j (profile store)
    neo4j_conn = Neo4jConnection(settings)
    await neo4j_conn.connect()
    await init_schema(neo4j_conn)
    set_neo4j_conn(neo4j_conn)

    # Redis (session mirror)
    redis_client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    set_redis(redis_client)
    sessions = SessionRegistry(
        RedisSessionStore(redis_client, settings.SESSION_PERSISTED_RETENTION_SECONDS), settings
    )
    set_sessions(sessions)
    sweeper = asyncio.create_task(sessions.run_sweeper())

    # LLM + search
    router = ModelRouter(LLMRegistry(settings))
    deps = SearchDependencies.build(settings, router, TavilySearchBackend(settings))
    service = ProfileService(
        settings,
        deps,
        ProfileAssembler(router=router, settings=settings),
        ProfileRepository(neo4j_conn),
        sessions,
    )
    set_profile_service(service)

    logger.info("app_started", search_mode=settings.SEARCH_MODE)
    yield

    # Shutdown
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await service.close()
    await sessions.close()
    await neo4j_conn.close()
    set_profile_service(None)
    set_sessions(None)
    set_redis(None)
    set_neo4j_conn(None)
    logger.info("app_stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    application = FastAPI(
        title="Dossier",
        description="Multi-phase OSINT search and validation engine",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(api_router)

    @application.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @application.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("invalid_request", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid request body", "errors": jsonable_encoder(exc.errors())},
        )

    @application.exception_handler(InvalidSubjectError)
    async def invalid_subject_handler(request: Request, exc: InvalidSubjectError) -> JSONResponse:
        logger.info("invalid_subject", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @application.exception_handler(ProfileNotFoundError)
    @application.exception_handler(SessionNotFoundError)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @application.exception_handler(ProfileStoreError)
    async def store_error_handler(request: Request, exc: ProfileStoreError) -> JSONResponse:
        logger.error("profile_store_error", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Profile store unavailable"})

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "type": type(exc).__name__},
        )

    return application


app = create_app()
