"""Per-provider-family credential resolution."""

from typing import Dict, Optional

from .config import Config
from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)


class CredentialProvider:
    """Resolves one secret per provider family on demand.

    Injected into the orchestrator so nothing reads credentials from the
    environment at request time.
    """

    def __init__(self, secrets: Dict[str, Optional[str]]):
        self._secrets = dict(secrets)

    @classmethod
    def from_config(cls, config: Config) -> "CredentialProvider":
        return cls({
            "gemini": config.gemini_api_key,
            "openai": config.openai_api_key,
            "kie": config.kie_ai_api_key,
        })

    def has(self, family: str) -> bool:
        return bool(self._secrets.get(family))

    def resolve(self, family: str, service_id: Optional[str] = None) -> str:
        """
        Return the secret for a provider family.

        Args:
            family: Credential family (gemini, openai, kie)
            service_id: Service the credential is needed for (error context)

        Raises:
            ConfigurationError: If the secret is missing or empty
        """
        secret = self._secrets.get(family)
        if not secret:
            logger.error(
                "Credential missing",
                extra={"family": family, "service_id": service_id}
            )
            raise ConfigurationError(
                f"API key not configured for {service_id or family}"
            )
        return secret
