"""kie.ai Veo video adapter."""

import random
from typing import Callable, Optional

from .kie import KieTaskProvider
from ..core.prompt_builder import aspect_ratio_for
from ..models.enums import MediaClass
from ..models.outcomes import Outcome
from ..utils.logger import get_logger

logger = get_logger(__name__)

MODEL_BY_SERVICE = {
    "veo-3-quality": "veo3",
    "veo-3-fast": "veo3_fast",
    "veo-2": "veo2",
}


def random_seed() -> int:
    return random.randint(10000, 99999)


class VeoAdapter(KieTaskProvider):
    """Text-to-video generation. One video per call."""

    name = "kie-veo"
    service_ids = tuple(MODEL_BY_SERVICE)
    media_class = MediaClass.VIDEO
    endpoint = "veo"
    result_keys = ("videoUrl",)
    max_count = 1

    def __init__(
        self,
        max_attempts: int,
        watermark: Optional[str] = "BLP",
        enable_fallback: bool = True,
        seed_factory: Callable[[], int] = random_seed,
        **kwargs,
    ):
        super().__init__(max_attempts=max_attempts, **kwargs)
        self.watermark = watermark
        self.enable_fallback = enable_fallback
        self.seed_factory = seed_factory

    async def submit(self, request, api_key: str) -> Outcome:
        service_id = request.brief.service_id
        model = MODEL_BY_SERVICE.get(service_id, "veo3")

        payload = {
            "prompt": request.prompt,
            "model": model,
            "aspectRatio": aspect_ratio_for(request.brief.size),
            "enableFallback": self.enable_fallback,
            "seeds": self.seed_factory(),
        }
        if self.watermark:
            payload["watermark"] = self.watermark

        logger.info(
            f"🚀 Submitting to Veo: {model}",
            extra={
                "provider": self.name,
                "model": model,
                "aspect_ratio": payload["aspectRatio"],
                "prompt": request.prompt[:100],
            }
        )

        response = await self._send(
            "POST",
            f"{self.base_url}/{self.endpoint}/generate",
            api_key,
            json=payload,
        )

        return self._submit_task(
            response,
            description=f"AI-generated video advertisement using {model}: {request.prompt}",
            note=f"Generated with kie.ai {service_id.replace('-', ' ', 1).upper()}",
        )
