"""Adapter registry keyed by service id."""

from typing import Dict, List, Optional

import httpx

from .base import BaseProvider
from .flux_kontext import FluxKontextAdapter
from .imagen import ImagenAdapter
from .openai_image import GPTImageAdapter
from .veo import VeoAdapter
from ..models.enums import MediaClass
from ..utils.config import Config
from ..utils.errors import ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AdapterRegistry:
    """Maps service ids to adapters. Adding a provider is one register() call."""

    def __init__(self):
        self._adapters: Dict[str, BaseProvider] = {}

    def register(self, adapter: BaseProvider) -> None:
        for service_id in adapter.service_ids:
            if service_id in self._adapters:
                raise ValueError(f"Service '{service_id}' already registered")
            self._adapters[service_id] = adapter

        logger.info(
            f"Registered {adapter.name}",
            extra={"provider": adapter.name, "service_ids": list(adapter.service_ids)}
        )

    def get(self, service_id: str) -> BaseProvider:
        """
        Look up the adapter for a service.

        Raises:
            ValidationError: If the service id is unknown
        """
        adapter = self._adapters.get(service_id)
        if adapter is None:
            raise ValidationError(f"Unknown service: {service_id}")
        return adapter

    def service_ids(self, media_class: Optional[MediaClass] = None) -> List[str]:
        return [
            service_id for service_id, adapter in self._adapters.items()
            if media_class is None or adapter.media_class == media_class
        ]

    def adapters(self) -> List[BaseProvider]:
        """Distinct adapters in registration order."""
        seen = []
        for adapter in self._adapters.values():
            if adapter not in seen:
                seen.append(adapter)
        return seen

    async def initialize_all(self) -> None:
        for adapter in self.adapters():
            await adapter.initialize()

    async def close_all(self) -> None:
        for adapter in self.adapters():
            await adapter.close()


def build_default_registry(
    config: Config,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AdapterRegistry:
    """Registry with every provider the studio supports."""
    timeout = config.timeout_provider_seconds
    polling = config.polling

    registry = AdapterRegistry()
    registry.register(ImagenAdapter(
        timeout=timeout,
        description_model=config.fallback.description_model,
        transport=transport,
    ))
    registry.register(GPTImageAdapter(timeout=timeout, transport=transport))
    registry.register(FluxKontextAdapter(
        max_attempts=polling.kontext_max_attempts,
        poll_interval_seconds=polling.interval_seconds,
        initial_delay_seconds=polling.initial_delay_seconds,
        timeout=timeout,
        transport=transport,
    ))
    registry.register(VeoAdapter(
        max_attempts=polling.video_max_attempts,
        watermark=config.video.watermark,
        enable_fallback=config.video.enable_fallback,
        poll_interval_seconds=polling.interval_seconds,
        initial_delay_seconds=polling.initial_delay_seconds,
        timeout=timeout,
        transport=transport,
    ))
    return registry
