"""Degraded-mode fallback when the primary image provider is unusable."""

import hashlib
from typing import List
from urllib.parse import quote

from .prompt_builder import dimensions_for
from ..models.outcomes import Rejected
from ..models.schemas import GeneratedMedia, GenerationRequest
from ..utils.config import Config
from ..utils.errors import ProviderError, TransportError
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEGRADED_NOTE = (
    "Note: Imagen 4 API access may require additional permissions. "
    "Using placeholder images with AI-generated descriptions."
)


class DegradedFallback:
    """Substitutes placeholder images and a synthesized description."""

    def __init__(
        self,
        placeholder_base_url: str = "https://picsum.photos",
        strict: bool = False,
    ):
        """
        Initialize fallback handler.

        Args:
            placeholder_base_url: Placeholder image service
            strict: Propagate a failed description call instead of using
                a stand-in description
        """
        self.placeholder_base_url = placeholder_base_url.rstrip("/")
        self.strict = strict

    @classmethod
    def from_config(cls, config: Config) -> "DegradedFallback":
        return cls(
            placeholder_base_url=config.fallback.placeholder_base_url,
            strict=config.fallback.describe_strict,
        )

    def placeholder_url(self, prompt: str, index: int, size: str) -> str:
        """Deterministic placeholder reference for one artifact slot."""
        seed = hashlib.sha256(f"{prompt}|{index}".encode("utf-8")).hexdigest()[:16]
        width, height = dimensions_for(size)
        return f"{self.placeholder_base_url}/seed/{quote(seed)}/{width}/{height}"

    async def build(
        self,
        adapter,
        request: GenerationRequest,
        api_key: str,
        rejection: Rejected,
    ) -> List[GeneratedMedia]:
        """
        Produce one placeholder per requested artifact.

        Args:
            adapter: Primary adapter (provides describe())
            request: The rejected request
            api_key: Credential of the primary provider
            rejection: The permission-class rejection that triggered this

        Returns:
            Media sharing one synthesized description
        """
        logger.warning(
            "⚠️ Primary provider unusable, switching to degraded mode",
            extra={
                "provider": adapter.name,
                "reason": rejection.message,
                "count": request.count,
            }
        )

        description = await self._describe(adapter, request, api_key)

        return [
            GeneratedMedia(
                content_ref=self.placeholder_url(request.prompt, index, request.brief.size),
                description=description,
                note=DEGRADED_NOTE,
            )
            for index in range(request.count)
        ]

    async def _describe(self, adapter, request: GenerationRequest, api_key: str) -> str:
        try:
            return await adapter.describe(request.prompt, api_key)
        except (ProviderError, TransportError) as e:
            if self.strict:
                raise
            logger.warning(
                f"Description call failed, using stand-in description: {e}",
                extra={"provider": adapter.name, "error": str(e)}
            )
            return f"AI description unavailable. Intended image: {request.prompt}"
