"""Custom exception classes for the ad studio generation service."""

from typing import Optional


class AdStudioError(Exception):
    """Base exception for all ad studio errors."""
    pass


class ConfigurationError(AdStudioError):
    """Configuration errors, including a missing provider credential."""
    pass


class ValidationError(AdStudioError):
    """Required brief fields are absent or inconsistent."""
    pass


class TransportError(AdStudioError):
    """Network-level failure talking to a provider."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider} transport error: {message}")


class ProviderError(AdStudioError):
    """Generic provider API error with status code and error kind."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        error_kind: str = "provider",
    ):
        self.provider = provider
        self.status_code = status_code
        self.error_kind = error_kind
        self.detail = message
        super().__init__(f"{provider} error: {message}")


class GenerationTimeoutError(AdStudioError):
    """Polling budget for a provider task was exhausted."""

    def __init__(self, provider: str, task_id: str, attempts: int):
        self.provider = provider
        self.task_id = task_id
        self.attempts = attempts
        super().__init__(
            f"{provider} task {task_id} still processing after {attempts} attempts"
        )


class PersistenceError(AdStudioError):
    """History storage could not be read or written."""
    pass
