from .base import Provider, ProviderResult
from .http import HttpProvider
from .memory import InMemoryProvider, LocalFileProvider
from .retry import RetryingProvider
from .registry import SUPPORTED_PROVIDERS, create_provider

__all__ = [
    "Provider",
    "ProviderResult",
    "HttpProvider",
    "InMemoryProvider",
    "LocalFileProvider",
    "RetryingProvider",
    "SUPPORTED_PROVIDERS",
    "create_provider",
]
