"""OpenAI GPT Image adapter (alternate image provider)."""

from typing import Optional

import httpx

from .base import BaseProvider
from ..models.enums import MediaClass
from ..models.outcomes import Immediate, Outcome
from ..models.schemas import GeneratedMedia
from ..utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_SIZES = ("1792x1024", "1024x1792")


class GPTImageAdapter(BaseProvider):
    """Synchronous image generation with gpt-image-1. One image per call."""

    name = "openai-gpt-image"
    service_ids = ("openai-gpt-image",)
    media_class = MediaClass.IMAGE
    credential_family = "openai"
    max_count = 1

    def __init__(
        self,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url="https://api.openai.com/v1",
            timeout=timeout,
            transport=transport,
        )

    def _auth_headers(self, api_key: str) -> dict:
        return {"Authorization": f"Bearer {api_key}"}

    @staticmethod
    def _size(size: str) -> str:
        return size if size in SUPPORTED_SIZES else "1024x1024"

    async def submit(self, request, api_key: str) -> Outcome:
        payload = {
            "model": "gpt-image-1",
            "prompt": request.prompt,
            "n": min(request.count, self.max_count),
            "size": self._size(request.brief.size),
            "quality": "auto",
            "output_format": "jpeg",
        }

        logger.info(
            "🚀 Submitting to GPT Image",
            extra={"provider": self.name, "size": payload["size"]}
        )

        response = await self._send(
            "POST",
            f"{self.base_url}/images/generations",
            api_key,
            json=payload,
        )

        if response.status_code >= 400:
            return self._reject_response(response)

        media = []
        for item in self._json(response).get("data") or []:
            if item.get("url"):
                content_ref = item["url"]
            elif item.get("b64_json"):
                content_ref = f"data:image/jpeg;base64,{item['b64_json']}"
            else:
                continue
            media.append(GeneratedMedia(
                content_ref=content_ref,
                description=f"AI-generated advertisement using GPT Image: {request.prompt}",
                note="Generated with OpenAI GPT Image",
            ))

        if not media:
            return self._classify_rejection("No images returned", response.status_code)

        return Immediate(media=media)
