"""Configuration management for the ad studio generation service."""

import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_SETTINGS_PATH = Path("config/settings.yaml")


class PollingConfig(BaseModel):
    """Timing and budgets for asynchronous provider tasks."""
    initial_delay_seconds: float = 3.0
    interval_seconds: float = 5.0
    kontext_max_attempts: int = 30
    video_max_attempts: int = 60


class HistoryConfig(BaseModel):
    """Capacity of each media-class history."""
    image_capacity: int = 50
    video_capacity: int = 20


class FallbackConfig(BaseModel):
    """Degraded-mode behaviour when the primary image provider is unusable."""
    placeholder_base_url: str = "https://picsum.photos"
    description_model: str = "gemini-1.5-flash"
    # When true, a failed description call aborts the request
    describe_strict: bool = False


class VideoConfig(BaseModel):
    """Video provider request options."""
    watermark: Optional[str] = "BLP"
    enable_fallback: bool = True


class Config(BaseModel):
    """Main application configuration."""

    # API Keys (one per provider family)
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    kie_ai_api_key: Optional[str] = Field(default=None, alias="KIE_AI_API_KEY")

    # Application Settings
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    history_dir: Path = Field(default=Path("data/history"), alias="HISTORY_DIR")

    # Timeout Settings
    timeout_provider_seconds: float = Field(default=120.0, alias="TIMEOUT_PROVIDER_SECONDS")

    polling: PollingConfig = Field(default_factory=PollingConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    video: VideoConfig = Field(default_factory=VideoConfig)

    class Config:
        populate_by_name = True


# Global config instance
_config: Optional[Config] = None


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load configuration from environment and the YAML settings file.

    Args:
        path: Settings file (defaults to config/settings.yaml)

    Returns:
        Config instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config

    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH

    try:
        if not settings_path.exists():
            raise ConfigurationError(f"settings.yaml not found at {settings_path}")

        with open(settings_path, "r", encoding="utf-8") as f:
            settings = yaml.safe_load(f) or {}

        # Merge environment variables with YAML config
        config_data = {
            **os.environ,
            **settings,
        }

        _config = Config(**config_data)

        logger.info(
            "Configuration loaded successfully",
            extra={
                "environment": _config.app_env,
                "history_dir": str(_config.history_dir),
                "settings_path": str(settings_path),
            }
        )

        return _config

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}")


def get_config() -> Config:
    """
    Get the current configuration instance.

    Raises:
        ConfigurationError: If config not loaded
    """
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config
