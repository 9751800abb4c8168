"""Main FastAPI application entry point."""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import export, generate, health
from .api.export import ArtifactExporter
from .core import DegradedFallback, HistoryStore, RequestOrchestrator
from .providers import build_default_registry
from .utils.config import load_config
from .utils.credentials import CredentialProvider
from .utils.errors import (
    ConfigurationError,
    ProviderError,
    TransportError,
    ValidationError,
)
from .utils.logger import get_logger

logger = get_logger(__name__)


def build_orchestrator(config) -> RequestOrchestrator:
    """Wire the orchestrator and its collaborators from configuration."""
    return RequestOrchestrator(
        registry=build_default_registry(config),
        credentials=CredentialProvider.from_config(config),
        history=HistoryStore.from_config(config),
        fallback=DegradedFallback.from_config(config),
    )


def create_app(
    orchestrator: Optional[RequestOrchestrator] = None,
    exporter: Optional[ArtifactExporter] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        orchestrator: Pre-built orchestrator (tests); when omitted one is
            built from config/settings.yaml at startup
        exporter: Artifact exporter (tests inject a mock transport)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")

        if orchestrator is None:
            config = load_config()
            app.state.orchestrator = build_orchestrator(config)
        else:
            app.state.orchestrator = orchestrator

        app.state.exporter = exporter or ArtifactExporter()

        await app.state.orchestrator.registry.initialize_all()
        logger.info(
            "Provider adapters initialized",
            extra={"services": app.state.orchestrator.registry.service_ids()}
        )

        yield

        logger.info("Application shutting down...")
        await app.state.orchestrator.registry.close_all()

    app = FastAPI(
        title="Ad Studio",
        description="Marketing creative generation across image and video providers",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(generate.router, tags=["generation"])
    app.include_router(export.router, tags=["export"])

    _register_error_handlers(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    """Map service errors to HTTP responses."""

    def handler(status_code: int):
        async def handle(request: Request, exc: Exception):
            logger.warning(
                f"Request failed: {exc}",
                extra={"path": request.url.path, "error_type": type(exc).__name__}
            )
            body = {"error": type(exc).__name__, "message": str(exc)}
            if isinstance(exc, ProviderError):
                body["error_kind"] = exc.error_kind
            return JSONResponse(status_code=status_code, content=body)
        return handle

    app.add_exception_handler(ValidationError, handler(422))
    app.add_exception_handler(ConfigurationError, handler(503))
    app.add_exception_handler(ProviderError, handler(502))
    app.add_exception_handler(TransportError, handler(504))


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ad_studio.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=False,
    )
