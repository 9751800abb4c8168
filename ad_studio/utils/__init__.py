"""Utility modules for configuration, credentials, logging, and error handling."""

from .config import load_config, get_config, Config
from .credentials import CredentialProvider
from .ids import ArtifactIdGenerator
from .logger import get_logger
from .retry import retry_async

__all__ = [
    "load_config",
    "get_config",
    "Config",
    "CredentialProvider",
    "ArtifactIdGenerator",
    "get_logger",
    "retry_async",
]
