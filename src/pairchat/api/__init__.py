"""FastAPI application for the pairchat backend.

Serves the user list and the append-only message log stored in the JSON
document store.
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pairchat import __version__
from pairchat.api.health import router as health_router
from pairchat.api.messages import router as messages_router
from pairchat.api.users import router as users_router
from pairchat.errors import StoreError

if TYPE_CHECKING:
    from pairchat.config import Config

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    log.info("api_starting")
    yield
    log.info("api_stopping")


def create_app(config: "Config") -> FastAPI:
    """Create and configure the FastAPI application.

    The caller is responsible for setting ``app.state.config`` and
    ``app.state.store``.

    Args:
        config: Application configuration.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="pairchat API",
        description="""
## About

Backend for two-party messaging. Users are seeded and fixed; messages are
append-only and persisted to a single JSON document.

- **Users**: `GET /api/users`
- **Messages**: `GET /api/messages?user=<name>`, `POST /api/messages`

## Authentication

None (local development only).
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        log.info(
            "request_start",
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        log.info(
            "request_complete",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        log.error("store_unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": "Store unavailable"})

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(messages_router)

    return app
