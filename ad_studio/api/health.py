"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from .. import __version__

router = APIRouter()


@router.get("/")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "ad-studio",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness: the orchestrator is wired and knows its providers."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    services = orchestrator.registry.service_ids() if orchestrator else []
    return {
        "ready": orchestrator is not None,
        "services": services,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
