"""
FastAPI application for the Echo-Audit API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import Settings, get_settings
from .core.exceptions import (
    APIError,
    api_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.kv_store import KeyValueStore, RedisKeyValueStore, create_store
from .core.logging import setup_logging
from .middleware.cache_control import CacheControlMiddleware
from .middleware.rate_limit import limiter
from .routers import audits, auth, health, projects
from .services.audit_pipeline import AuditPipeline, ViolationOracle
from .services.auth_service import AuthService
from .services.oracle_client import GeminiClient
from .services.rate_limiter import (
    InMemoryLoginRateLimiter,
    LoginRateLimiter,
    RedisLoginRateLimiter,
)
from .services.repository import AuditRepository


def build_login_limiter(settings: Settings, store: KeyValueStore) -> LoginRateLimiter:
    """Share lockout state through Redis when the store lives there."""
    if isinstance(store, RedisKeyValueStore):
        return RedisLoginRateLimiter(
            store.client,
            max_attempts=settings.login_max_attempts,
            lockout_seconds=settings.login_lockout_seconds,
        )
    return InMemoryLoginRateLimiter(
        max_attempts=settings.login_max_attempts,
        lockout_seconds=settings.login_lockout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    app_settings: Settings = app.state.settings
    logger = structlog.get_logger()

    setup_logging(app_settings.log_level, app_settings.log_format)
    logger.info("Configuration loaded", **app_settings.log_config_safely())

    if not await app.state.store.ping():
        logger.warning("Key-value store is not reachable at startup")

    logger.info("Starting Echo-Audit API", version=app.version)

    yield

    oracle = app.state.oracle
    if isinstance(oracle, GeminiClient):
        await oracle.aclose()
    await app.state.store.close()
    logger.info("Shutting down Echo-Audit API")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    oracle: Optional[ViolationOracle] = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    store = store or create_store(settings)
    oracle = oracle or GeminiClient.from_settings(settings)

    app.state.settings = settings
    app.state.store = store
    app.state.oracle = oracle
    app.state.repository = AuditRepository(store)
    app.state.auth_service = AuthService.from_settings(settings, store, build_login_limiter(settings, store))
    app.state.pipeline = AuditPipeline.from_settings(settings, oracle)
    app.state.limiter = limiter

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(CacheControlMiddleware)

    # Exception handlers
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(APIError, api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(projects.router, prefix="/api")
    app.include_router(audits.router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "echo_audit.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
