"""Configuration module: load engine, provider and resource-type settings."""

from typing import Optional
from pydantic import ValidationError
from ..utils.errors import ConfigError
from ..utils.logging import get_logger
from .manager import load_config
from .models import EngineConfig, EngineSettings, ProviderSettings, RetrySettings, HttpSettings
from .paths import get_defaults_path, get_user_config_path, get_project_config_path

logger = get_logger("config")


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load and validate configuration.

    Args:
        config_path: Optional explicit config YAML layered over the defaults

    Returns:
        EngineConfig

    Raises:
        ConfigError: If any layer is invalid
    """
    data = load_config(config_path)
    try:
        config = EngineConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")
    except TypeError as e:
        raise ConfigError(f"Invalid configuration: {e}")

    logger.debug(
        f"Configuration: provider={config.provider.name}, max_workers={config.engine.max_workers}, "
        f"{len(config.resource_types)} resource types"
    )
    return config


__all__ = [
    "EngineConfig",
    "EngineSettings",
    "ProviderSettings",
    "RetrySettings",
    "HttpSettings",
    "load_config",
    "load_engine_config",
    "get_defaults_path",
    "get_user_config_path",
    "get_project_config_path",
]
