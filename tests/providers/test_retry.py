"""Tests for retrying transient provider failures and the provider registry."""

import pytest
from infraplan.config.models import ProviderSettings, RetrySettings
from infraplan.providers.memory import InMemoryProvider, LocalFileProvider
from infraplan.providers.registry import create_provider
from infraplan.providers.retry import RetryingProvider, is_retryable
from infraplan.utils.errors import ConfigError, ProviderError


class FlakyProvider(InMemoryProvider):
    """Fails the first `failures` creates with the given error."""

    def __init__(self, failures, retryable=True):
        super().__init__()
        self.failures = failures
        self.retryable = retryable
        self.attempts = 0

    def create(self, resource_type, attributes):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ProviderError("throttled", retryable=self.retryable)
        return super().create(resource_type, attributes)


class TestRetryingProvider:
    """Test tenacity-backed retries."""

    def test_transient_failures_retried(self):
        inner = FlakyProvider(failures=2)
        provider = RetryingProvider(inner, attempts=3, backoff_multiplier=0)

        result = provider.create("aws_vpc", {})

        assert result.provider_id == "vpc-000000000001"
        assert inner.attempts == 3

    def test_gives_up_after_attempts(self):
        inner = FlakyProvider(failures=5)
        provider = RetryingProvider(inner, attempts=2, backoff_multiplier=0)

        with pytest.raises(ProviderError, match="throttled"):
            provider.create("aws_vpc", {})
        assert inner.attempts == 2

    def test_permanent_failure_not_retried(self):
        inner = FlakyProvider(failures=1, retryable=False)
        provider = RetryingProvider(inner, attempts=3, backoff_multiplier=0)

        with pytest.raises(ProviderError):
            provider.create("aws_vpc", {})
        assert inner.attempts == 1

    def test_update_and_destroy_delegate(self):
        inner = InMemoryProvider()
        provider = RetryingProvider(inner, attempts=2, backoff_multiplier=0)
        created = provider.create("aws_vpc", {"cidr_block": "10.0.0.0/16"})

        provider.update(created.provider_id, {"cidr_block": "10.1.0.0/16"})
        assert inner.resources[created.provider_id]["attributes"]["cidr_block"] == "10.1.0.0/16"

        provider.destroy(created.provider_id)
        assert inner.resources == {}

    def test_is_retryable(self):
        assert is_retryable(ProviderError("x", retryable=True))
        assert not is_retryable(ProviderError("x"))
        assert not is_retryable(RuntimeError("x"))


class TestRegistry:
    """Test provider construction from settings."""

    def test_memory_wrapped_in_retry(self):
        provider = create_provider(ProviderSettings(name="memory"))
        assert isinstance(provider, RetryingProvider)
        assert isinstance(provider.inner, InMemoryProvider)
        assert provider.name == "memory"

    def test_single_attempt_not_wrapped(self):
        provider = create_provider(ProviderSettings(name="memory", retry=RetrySettings(attempts=1)))
        assert isinstance(provider, InMemoryProvider)

    def test_local_uses_path(self, tmp_path):
        settings = ProviderSettings(name="local", local_path=str(tmp_path / "r.json"),
                                    retry=RetrySettings(attempts=1))
        provider = create_provider(settings)
        assert isinstance(provider, LocalFileProvider)
        assert provider.path == tmp_path / "r.json"

    def test_unknown_provider(self):
        with pytest.raises(ConfigError, match="Unsupported provider"):
            create_provider(ProviderSettings(name="gcp"))
