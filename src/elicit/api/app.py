"""
FastAPI application for Elicit.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from ..core.engine import ConversationEngine
from ..core.errors import (
    ConfigurationError,
    ElicitError,
    GenerationError,
    SessionNotFoundError,
    StateError,
    ValidationError,
)
from ..llm.client import LLMClient, TextGenerator
from .routes import router
from .session import SessionRegistry
from .storage import InMemoryStore

# Configure logging to show INFO from elicit modules
logging.basicConfig(level=logging.INFO, format="%(name)s - %(levelname)s - %(message)s")
logging.getLogger("elicit").setLevel(logging.INFO)

logger = logging.getLogger(__name__)


def status_for(exc: ElicitError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, SessionNotFoundError):
        return 404
    if isinstance(exc, StateError):
        return 409
    if isinstance(exc, GenerationError):
        return 502
    if isinstance(exc, ConfigurationError):
        return 500
    return 500


def create_app(
    generator: Optional[TextGenerator] = None,
    registry: Optional[SessionRegistry] = None,
    store: Optional[InMemoryStore] = None,
) -> FastAPI:
    """Build the app. Pass a generator/registry/store to isolate tests."""
    registry = registry or SessionRegistry.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        registry.start()
        logger.info("[App] Session sweeper started")
        try:
            yield
        finally:
            registry.stop()
            logger.info("[App] Session sweeper stopped")

    app = FastAPI(
        title="Elicit",
        description="Adaptive requirements-discovery interview engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.engine = ConversationEngine(generator or LLMClient())
    app.state.registry = registry
    app.state.store = store or InMemoryStore()

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ElicitError)
    async def elicit_error_handler(request: Request, exc: ElicitError):
        code = status_for(exc)
        if code >= 500:
            logger.warning(f"[App] {request.url.path}: {exc.kind}: {exc.message}")
        return JSONResponse(status_code=code, content={"error": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"error": ValidationError(message or "Invalid request").to_dict()},
        )

    app.include_router(router)

    @app.get("/")
    async def root():
        return {"message": "Elicit API", "docs": "/docs"}

    return app


app = create_app()
