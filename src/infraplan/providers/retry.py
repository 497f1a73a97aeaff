"""Retry decorator around a provider."""

import logging
from typing import Any, Dict
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from ..utils.errors import ProviderError
from ..utils.logging import get_logger
from .base import Provider, ProviderResult

logger = get_logger("providers.retry")


def is_retryable(error: BaseException) -> bool:
    """Only provider errors flagged as transient are retried."""
    return isinstance(error, ProviderError) and error.retryable


class RetryingProvider(Provider):
    """Wraps another provider and retries transient failures with exponential backoff."""

    def __init__(self, inner: Provider, attempts: int = 3, backoff_multiplier: float = 1.0,
                 backoff_max: float = 30.0):
        self.inner = inner
        self.name = inner.name
        self.attempts = attempts
        self.backoff_multiplier = backoff_multiplier
        self.backoff_max = backoff_max

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=self.backoff_multiplier, max=self.backoff_max),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def create(self, resource_type: str, attributes: Dict[str, Any]) -> ProviderResult:
        return self._retrying()(self.inner.create, resource_type, attributes)

    def update(self, provider_id: str, changed_attributes: Dict[str, Any]) -> Dict[str, Any]:
        return self._retrying()(self.inner.update, provider_id, changed_attributes)

    def destroy(self, provider_id: str) -> None:
        return self._retrying()(self.inner.destroy, provider_id)
