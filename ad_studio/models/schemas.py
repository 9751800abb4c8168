"""Pydantic schemas for briefs, requests, artifacts and history."""

from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone

from .enums import MediaClass, ProcessStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReferenceAsset(BaseModel):
    """Validated reference image supplied by the asset capture layer.

    The binary is kept in memory only; persisted briefs carry metadata.
    """
    data: Optional[bytes] = Field(default=None, exclude=True)
    mime_type: str = "image/png"
    filename: str = "reference.png"
    contextual_prompt: str = ""

    class Config:
        frozen = True


class Brief(BaseModel):
    """User-authored creative description driving a generation request."""
    headline: str = ""
    secondary_text: str = ""
    cta: str = ""
    description: str = ""
    style: str = "modern-marketing"
    size: str = "1024x1024"
    service_id: str = "google-gemini"
    count: int = Field(default=1, ge=1)
    reference_asset: Optional[ReferenceAsset] = None

    class Config:
        frozen = True


class GenerationRequest(BaseModel):
    """A brief plus the provider-capped count and the composed prompt."""
    brief: Brief
    count: int
    prompt: str

    class Config:
        frozen = True


class TaskHandle(BaseModel):
    """Opaque reference to a provider's in-progress asynchronous job."""
    task_id: str
    provider: str
    created_at: datetime = Field(default_factory=_utcnow)

    class Config:
        frozen = True


class GeneratedMedia(BaseModel):
    """One piece of content extracted from a provider success response."""
    content_ref: str
    description: str
    note: str


class Artifact(BaseModel):
    """A generated image or video with the brief that produced it."""
    id: str
    media_class: MediaClass
    content_ref: str
    brief: Brief
    prompt: str
    description: str
    note: str
    degraded: bool = False
    task_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class HistoryEntry(BaseModel):
    """A persisted artifact with its insertion order."""
    artifact: Artifact
    sequence: int


class GenerationResult(BaseModel):
    """Unified result of a generate or regenerate call."""
    status: ProcessStatus
    media_class: MediaClass
    artifacts: List[Artifact] = Field(default_factory=list)
    task_handle: Optional[TaskHandle] = None
    message: Optional[str] = None
    generation: int = 0
