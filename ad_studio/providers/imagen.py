"""Google Imagen 4 adapter (primary image provider) and Gemini descriptions."""

from typing import List, Optional

import httpx

from .base import BaseProvider
from ..core.prompt_builder import aspect_ratio_for
from ..models.enums import MediaClass
from ..models.outcomes import Immediate, Outcome
from ..models.schemas import GeneratedMedia
from ..utils.errors import ProviderError, TransportError
from ..utils.logger import get_logger
from ..utils.retry import retry_async

logger = get_logger(__name__)

IMAGEN_MODEL = "imagen-4.0-generate-001"


class ImagenAdapter(BaseProvider):
    """Synchronous image generation through the Imagen predict endpoint."""

    name = "google-imagen"
    service_ids = ("google-gemini",)
    media_class = MediaClass.IMAGE
    credential_family = "gemini"
    max_count = 4
    is_primary = True

    def __init__(
        self,
        timeout: float = 120.0,
        description_model: str = "gemini-1.5-flash",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url="https://generativelanguage.googleapis.com/v1beta",
            timeout=timeout,
            transport=transport,
        )
        self.description_model = description_model

    def _auth_headers(self, api_key: str) -> dict:
        return {"x-goog-api-key": api_key}

    async def submit(self, request, api_key: str) -> Outcome:
        """
        Generate images for a request.

        Args:
            request: GenerationRequest with capped count
            api_key: Gemini API key

        Returns:
            Immediate with inline or hosted images, or Rejected
        """
        payload = {
            "instances": [{"prompt": request.prompt}],
            "parameters": {
                "sampleCount": request.count,
                "aspectRatio": aspect_ratio_for(request.brief.size),
            },
        }

        logger.info(
            f"🚀 Submitting to Imagen: {IMAGEN_MODEL}",
            extra={
                "provider": self.name,
                "count": request.count,
                "prompt": request.prompt[:100],
            }
        )

        response = await self._send(
            "POST",
            f"{self.base_url}/models/{IMAGEN_MODEL}:predict",
            api_key,
            json=payload,
        )

        if response.status_code >= 400:
            return self._reject_response(response)

        predictions = self._json(response).get("predictions") or []
        media = self._extract_media(predictions, request.prompt)

        if not media:
            return self._classify_rejection("No images returned", response.status_code)

        logger.info(
            f"✅ Imagen returned {len(media)} image(s)",
            extra={"provider": self.name, "count": len(media)}
        )
        return Immediate(media=media)

    def _extract_media(self, predictions: list, prompt: str) -> List[GeneratedMedia]:
        media = []
        for prediction in predictions:
            if not isinstance(prediction, dict):
                continue

            if prediction.get("bytesBase64Encoded"):
                mime = prediction.get("mimeType", "image/png")
                content_ref = f"data:{mime};base64,{prediction['bytesBase64Encoded']}"
            elif prediction.get("url") or prediction.get("gcsUri"):
                content_ref = prediction.get("url") or prediction.get("gcsUri")
            else:
                continue

            media.append(GeneratedMedia(
                content_ref=content_ref,
                description=f"AI-generated advertisement: {prompt}",
                note="Generated with Google Imagen 4",
            ))
        return media

    @retry_async(max_attempts=3, initial_delay=1.0, exceptions=(TransportError,))
    async def describe(self, prompt: str, api_key: str) -> str:
        """
        Ask Gemini for a vivid description of the image a prompt would produce.

        Raises:
            ProviderError: On a non-2xx response
            TransportError: After repeated connectivity failures
        """
        payload = {
            "contents": [{
                "parts": [{
                    "text": f'Create a vivid, detailed description of an image: "{prompt}". '
                            "Describe it as if the image exists.",
                }]
            }]
        }

        response = await self._send(
            "POST",
            f"{self.base_url}/models/{self.description_model}:generateContent",
            api_key,
            json=payload,
        )

        if response.status_code >= 400:
            raise ProviderError(
                "gemini",
                self._error_message(response),
                response.status_code,
            )

        try:
            text = self._json(response)["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.warning(
                "Gemini description response had no text",
                extra={"provider": self.name}
            )
            return "Description generated"

        return text.strip()
