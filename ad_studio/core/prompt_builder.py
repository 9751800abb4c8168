"""Composes provider prompts from creative briefs."""

from typing import Dict, List, Tuple

from ..models.enums import MediaClass
from ..models.schemas import Brief
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_STYLE = "modern-marketing"
DEFAULT_SIZE = "1024x1024"

# Per media class: content label, overlay labels, style suffix, format, requirements
TEMPLATES: Dict[MediaClass, Dict[str, object]] = {
    MediaClass.IMAGE: {
        "content": "Image content",
        "overlays": ("Headline", "Secondary text", "Call-to-action"),
        "style": "advertisement design",
        "format": "Format: Professional marketing advertisement with clean layout "
                  "and readable text placement",
        "requirements": "Requirements: High-quality, eye-catching design suitable "
                        "for digital marketing",
    },
    MediaClass.VIDEO: {
        "content": "Video content",
        "overlays": ("Headline text overlay", "Secondary text", "Call-to-action text"),
        "style": "video advertisement",
        "format": "Format: Professional marketing video advertisement with engaging visuals",
        "requirements": "Requirements: High-quality, attention-grabbing video suitable "
                        "for digital marketing campaigns",
    },
}

ASPECT_BY_SIZE = {
    "1792x1024": "16:9",
    "1024x1792": "9:16",
    "1024x1024": "1:1",
}
KNOWN_ASPECTS = ("16:9", "9:16", "1:1")


def compose(brief: Brief, media_class: MediaClass = MediaClass.IMAGE) -> str:
    """
    Build the generation prompt for a brief.

    Only non-empty fields are emitted. The result depends on nothing but
    the brief, so replaying a stored brief yields the same prompt.

    Args:
        brief: Creative brief
        media_class: Selects the image or video phrasing

    Returns:
        Prompt lines joined with ". "
    """
    template = TEMPLATES[media_class]
    lines: List[str] = []

    if brief.description.strip():
        lines.append(f"{template['content']}: {brief.description}")

    headline_label, secondary_label, cta_label = template["overlays"]
    overlays = []
    if brief.headline.strip():
        overlays.append(f'{headline_label}: "{brief.headline}"')
    if brief.secondary_text.strip():
        overlays.append(f'{secondary_label}: "{brief.secondary_text}"')
    if brief.cta.strip():
        overlays.append(f'{cta_label}: "{brief.cta}"')

    if overlays:
        lines.append(f"Text overlays needed: {', '.join(overlays)}")

    style = brief.style.strip() or DEFAULT_STYLE
    lines.append(f"Style: {style} {template['style']}")
    lines.append(template["format"])
    lines.append(template["requirements"])

    return ". ".join(lines)


def compose_contextual(brief: Brief) -> str:
    """Prompt for reference-conditioned generation: contextual prompt first."""
    contextual = brief.reference_asset.contextual_prompt if brief.reference_asset else ""
    base = compose(brief, MediaClass.IMAGE)
    if not contextual.strip():
        return base
    return f"{contextual}. {base}"


def aspect_ratio_for(size: str) -> str:
    """Map a size selector (WxH or ratio) to a provider aspect ratio.

    Unrecognised sizes fall back to square.
    """
    size = (size or "").strip()
    if size in KNOWN_ASPECTS:
        return size
    if size in ASPECT_BY_SIZE:
        return ASPECT_BY_SIZE[size]

    logger.warning(
        f"Unknown size '{size}', defaulting to square aspect ratio",
        extra={"size": size}
    )
    return "1:1"


def dimensions_for(size: str) -> Tuple[int, int]:
    """Parse a WxH size selector, defaulting to 1024x1024."""
    try:
        width, height = (size or DEFAULT_SIZE).lower().split("x", 1)
        return int(width), int(height)
    except ValueError:
        return 1024, 1024
