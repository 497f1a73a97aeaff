"""Declarative registry of provider bindings."""

from typing import Callable, Dict
from ..config.models import ProviderSettings
from ..utils.errors import ConfigError
from ..utils.logging import get_logger
from .base import Provider
from .http import HttpProvider
from .memory import InMemoryProvider, LocalFileProvider
from .retry import RetryingProvider

logger = get_logger("providers.registry")

SUPPORTED_PROVIDERS: Dict[str, Dict[str, object]] = {
    "memory": {
        "description": "Simulated cloud held in process memory (nothing persists)",
        "factory": lambda settings: InMemoryProvider(),
    },
    "local": {
        "description": "Simulated cloud persisted to provider.local_path",
        "factory": lambda settings: LocalFileProvider(settings.local_path),
    },
    "http": {
        "description": "REST service at provider.http.base_url",
        "factory": lambda settings: HttpProvider(
            base_url=settings.http.base_url,
            timeout=settings.http.timeout,
        ),
    },
}


def create_provider(settings: ProviderSettings) -> Provider:
    """
    Instantiate the configured provider, wrapped in RetryingProvider when
    more than one attempt is configured.

    Raises:
        ConfigError: Unknown provider name
    """
    entry = SUPPORTED_PROVIDERS.get(settings.name)
    if entry is None:
        raise ConfigError(
            f"Unsupported provider: {settings.name}. "
            f"Available: {', '.join(sorted(SUPPORTED_PROVIDERS))}"
        )

    factory: Callable[[ProviderSettings], Provider] = entry["factory"]
    provider = factory(settings)
    if settings.retry.attempts > 1:
        provider = RetryingProvider(
            provider,
            attempts=settings.retry.attempts,
            backoff_multiplier=settings.retry.backoff_multiplier,
            backoff_max=settings.retry.backoff_max,
        )
    logger.info(f"Using provider '{settings.name}' ({settings.retry.attempts} attempt(s) per call)")
    return provider
