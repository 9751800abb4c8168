"""Generation, regeneration, history and progress endpoints."""

import base64
import binascii
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..core.orchestrator import RequestOrchestrator
from ..models.enums import MediaClass
from ..models.schemas import Brief, GenerationResult, HistoryEntry, ReferenceAsset
from ..utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

MAX_REFERENCE_BYTES = 10 * 1024 * 1024


# ============================================================================
# 📝 REQUEST MODELS
# ============================================================================

class ReferenceImagePayload(BaseModel):
    """Reference image upload, base64 encoded."""
    data_base64: str
    mime_type: str
    filename: str = "reference.png"
    contextual_prompt: str = ""


class BriefPayload(BaseModel):
    """Creative brief as submitted by a client."""
    headline: str = ""
    secondary_text: str = ""
    cta: str = ""
    description: str = ""
    style: str = "modern-marketing"
    size: str = "1024x1024"
    service_id: str = "google-gemini"
    count: int = Field(default=1, ge=1, le=10)
    reference_image: Optional[ReferenceImagePayload] = None


class ProgressResponse(BaseModel):
    media_class: MediaClass
    in_progress: bool
    task_id: Optional[str] = None
    attempt: Optional[int] = None
    max_attempts: Optional[int] = None


def get_orchestrator(request: Request) -> RequestOrchestrator:
    return request.app.state.orchestrator


# ============================================================================
# 📎 ASSET CAPTURE
# ============================================================================

def capture_reference(payload: ReferenceImagePayload) -> ReferenceAsset:
    """Validate an uploaded reference image (image/*, at most 10MB)."""
    if not payload.mime_type.startswith("image/"):
        raise HTTPException(status_code=422, detail="Please upload a valid image file")

    try:
        data = base64.b64decode(payload.data_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="Reference image is not valid base64")

    if len(data) > MAX_REFERENCE_BYTES:
        raise HTTPException(status_code=422, detail="Image file must be less than 10MB")

    return ReferenceAsset(
        data=data,
        mime_type=payload.mime_type,
        filename=payload.filename,
        contextual_prompt=payload.contextual_prompt,
    )


def to_brief(payload: BriefPayload) -> Brief:
    reference = capture_reference(payload.reference_image) if payload.reference_image else None
    return Brief(
        **payload.model_dump(exclude={"reference_image"}),
        reference_asset=reference,
    )


# ============================================================================
# 🎨 ENDPOINTS
# ============================================================================

@router.post("/generate", response_model=GenerationResult)
async def generate(
    payload: BriefPayload,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    """Generate artifacts for a brief."""
    brief = to_brief(payload)
    logger.info(
        "Generate request received",
        extra={"service_id": brief.service_id, "count": brief.count}
    )
    return await orchestrator.generate(brief)


@router.post("/artifacts/{artifact_id}/regenerate", response_model=GenerationResult)
async def regenerate(
    artifact_id: str,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    """Generate one similar artifact from a past artifact's brief."""
    artifact = orchestrator.find_artifact(artifact_id)
    if artifact is None:
        raise HTTPException(status_code=404, detail=f"Artifact {artifact_id} not found")
    return await orchestrator.regenerate(artifact)


@router.get("/results/{media_class}")
async def current_results(
    media_class: MediaClass,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.current_results(media_class)


@router.get("/history/{media_class}", response_model=List[HistoryEntry])
async def history(
    media_class: MediaClass,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.history_entries(media_class)


@router.delete("/history/{media_class}")
async def clear_history(
    media_class: MediaClass,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    orchestrator.clear_history(media_class)
    return {"status": "cleared", "media_class": media_class.value}


@router.get("/progress/{media_class}", response_model=ProgressResponse)
async def progress(
    media_class: MediaClass,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    current = orchestrator.progress(media_class)
    if current is None:
        return ProgressResponse(media_class=media_class, in_progress=False)
    return ProgressResponse(media_class=media_class, in_progress=True, **current)
