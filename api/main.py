"""
FastAPI main application for the Shelf Catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import structlog
from fastapi import FastAPI, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import protected, public
from api.config import config as api_config
from api.database import CatalogService
from api.dependencies import build_identity_provider, build_kv_store, get_catalog
from api.errors import CatalogError, InternalError, describe_validation_errors
from api.models import ErrorResponse, HealthResponse
from identity.provider import IdentityProvider
from store.kv import KVStore
from utilities.config import config
from utilities.logger import RequestLogger

# Setup logging
logger = structlog.get_logger(__name__)
access_logger = RequestLogger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Clients passed to create_app are used as-is and left open; anything built
    here from configuration is closed on shutdown.
    """
    logger.info("Starting Shelf Catalog API")
    owned_store: Optional[KVStore] = None
    owned_identity: Optional[IdentityProvider] = None

    try:
        if getattr(app.state, "kv_store", None) is None:
            owned_store = build_kv_store(config)
            await owned_store.connect()
            app.state.kv_store = owned_store
            logger.info("Key-value store connection established")

        if getattr(app.state, "identity_provider", None) is None:
            owned_identity = build_identity_provider(config)
            app.state.identity_provider = owned_identity

    except Exception as e:
        logger.error("Failed to initialize backends", error=str(e))
        if owned_store:
            await owned_store.disconnect()
        raise

    app.state.catalog = CatalogService(app.state.kv_store)

    yield

    logger.info("Shutting down Shelf Catalog API")
    if owned_identity:
        await owned_identity.close()
    if owned_store:
        await owned_store.disconnect()


def _error_content(message: str, status_code: int, detail: Optional[str] = None) -> dict:
    return ErrorResponse(error=message, detail=detail, status_code=status_code).dict()


async def catalog_error_handler(request: Request, exc: CatalogError):
    """Handle catalog errors."""
    detail = exc.detail
    if isinstance(exc, InternalError) and not api_config.debug:
        detail = None
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(exc.message, exc.status_code, detail),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies as 400 rather than FastAPI's default 422."""
    detail = describe_validation_errors(exc.errors(), skip=1)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_content("Invalid request", status.HTTP_400_BAD_REQUEST, detail),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc.detail), exc.status_code),
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_content(
            "Internal server error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(exc) if api_config.debug else None,
        ),
    )


async def log_requests(request: Request, call_next):
    """Access log: one event per request with status and duration."""
    started = access_logger.start(request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception as e:
        access_logger.failed(started, str(e))
        raise
    access_logger.finish(started, response.status_code)
    return response


async def health_check(catalog: CatalogService = Depends(get_catalog)):
    """Health check endpoint."""
    try:
        health_info = await catalog.health_check()
        db_status = health_info.get("status", "unknown")
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        db_status = "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=api_config.api_version,
        database_status=db_status
    )


def create_app(
    kv_store: Optional[KVStore] = None,
    identity_provider: Optional[IdentityProvider] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        kv_store: Pre-built store client (tests pass an in-memory store)
        identity_provider: Pre-built identity client

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=api_config.api_title,
        description="""
    Multi-tenant catalog of collections and books.

    ## Authentication

    Routes under `/my` require a provider-issued access token:

    ```
    Authorization: Bearer <access_token>
    ```

    Every other route is public and read-only, except `/signup`.
    """,
        version=api_config.api_version,
        lifespan=lifespan
    )

    app.state.kv_store = kv_store
    app.state.identity_provider = identity_provider
    if kv_store is not None:
        app.state.catalog = CatalogService(kv_store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=api_config.cors_allow_credentials,
        allow_methods=api_config.cors_allow_methods,
        allow_headers=api_config.cors_allow_headers,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    prefix = api_config.route_prefix.rstrip("/")
    app.add_api_route(
        f"{prefix}/health", health_check,
        methods=["GET"], response_model=HealthResponse, tags=["Health"]
    )
    app.include_router(public.router, prefix=prefix)
    app.include_router(protected.router, prefix=prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level="info"
    )
