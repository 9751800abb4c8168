"""Artifact export: turns a content reference into a downloadable file."""

import base64
import binascii
from typing import Optional, Tuple

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from ..core.orchestrator import RequestOrchestrator
from ..models.enums import MediaClass
from ..utils.errors import TransportError
from ..utils.logger import get_logger
from .generate import get_orchestrator

logger = get_logger(__name__)

router = APIRouter()

DEFAULT_FILENAMES = {
    MediaClass.IMAGE: "generated-ad.png",
    MediaClass.VIDEO: "generated-video.mp4",
}


class ArtifactExporter:
    """Resolves inline payloads and hosted URLs to raw bytes."""

    def __init__(
        self,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.transport = transport

    async def export(self, content_ref: str) -> Tuple[bytes, str]:
        """
        Fetch the bytes behind a content reference.

        Args:
            content_ref: data: URI or hosted URL

        Returns:
            Tuple of (content, media type)

        Raises:
            ValueError: Malformed data URI
            TransportError: Hosted content could not be fetched
        """
        if content_ref.startswith("data:"):
            return self._decode_data_uri(content_ref)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(content_ref)
        except httpx.RequestError as e:
            raise TransportError("export", str(e) or type(e).__name__)

        if response.status_code >= 400:
            raise TransportError("export", f"download returned HTTP {response.status_code}")

        media_type = response.headers.get("content-type", "application/octet-stream")
        return response.content, media_type.split(";")[0]

    @staticmethod
    def _decode_data_uri(content_ref: str) -> Tuple[bytes, str]:
        header, _, payload = content_ref.partition(",")
        if not payload or not header.endswith(";base64"):
            raise ValueError("Unsupported data URI")

        media_type = header[len("data:"):-len(";base64")] or "application/octet-stream"
        try:
            return base64.b64decode(payload, validate=True), media_type
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}")


def get_exporter(request: Request) -> ArtifactExporter:
    return request.app.state.exporter


@router.get("/artifacts/{artifact_id}/download")
async def download(
    artifact_id: str,
    filename: Optional[str] = None,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
    exporter: ArtifactExporter = Depends(get_exporter),
):
    """Download an artifact's content as an attachment."""
    artifact = orchestrator.find_artifact(artifact_id)
    if artifact is None:
        raise HTTPException(status_code=404, detail=f"Artifact {artifact_id} not found")

    try:
        content, media_type = await exporter.export(artifact.content_ref)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    name = filename or DEFAULT_FILENAMES[artifact.media_class]
    logger.info(
        "📥 Artifact exported",
        extra={"artifact_id": artifact_id, "bytes": len(content), "media_type": media_type}
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )
