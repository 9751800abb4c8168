"""kie.ai Flux Kontext adapter (reference-image-conditioned generation)."""

from .kie import KieTaskProvider
from ..core.prompt_builder import aspect_ratio_for, compose_contextual
from ..models.enums import MediaClass
from ..models.outcomes import Outcome
from ..models.schemas import Brief
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Lower strength favours contextual generation over editing
KONTEXT_STRENGTH = "0.6"


class FluxKontextAdapter(KieTaskProvider):
    """Generates one image conditioned on an uploaded reference image."""

    name = "kie-flux-kontext"
    service_ids = ("flux-kontext",)
    media_class = MediaClass.IMAGE
    endpoint = "flux/kontext"
    result_keys = ("imageUrl",)
    max_count = 1
    requires_reference = True

    def compose_prompt(self, brief: Brief) -> str:
        return compose_contextual(brief)

    async def submit(self, request, api_key: str) -> Outcome:
        """
        Upload the reference image with the composed prompt (multipart).

        Returns:
            Pending with the kie.ai task id, Immediate if a URL came back
            directly, or Rejected
        """
        asset = request.brief.reference_asset

        form = {
            "prompt": request.prompt,
            "model": "flux1-kontext",
            "aspectRatio": aspect_ratio_for(request.brief.size),
            "strength": KONTEXT_STRENGTH,
            "enableFallback": "true",
        }
        files = {"image": (asset.filename, asset.data, asset.mime_type)}

        logger.info(
            "🚀 Submitting to Flux Kontext",
            extra={
                "provider": self.name,
                "aspect_ratio": form["aspectRatio"],
                "reference_size_kb": len(asset.data) / 1024,
            }
        )

        response = await self._send(
            "POST",
            f"{self.base_url}/{self.endpoint}/generate",
            api_key,
            data=form,
            files=files,
        )

        return self._submit_task(
            response,
            description=f"AI-generated advertisement using Flux Kontext: {asset.contextual_prompt}",
            note="Generated with kie.ai Flux Kontext (Contextual)",
        )
