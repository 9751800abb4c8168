"""Provider adapters for external generation services."""

from .base import BaseProvider
from .imagen import ImagenAdapter
from .openai_image import GPTImageAdapter
from .flux_kontext import FluxKontextAdapter
from .veo import VeoAdapter
from .registry import AdapterRegistry, build_default_registry

__all__ = [
    "BaseProvider",
    "ImagenAdapter",
    "GPTImageAdapter",
    "FluxKontextAdapter",
    "VeoAdapter",
    "AdapterRegistry",
    "build_default_registry",
]
