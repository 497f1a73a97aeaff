"""Abstract provider interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict
from pydantic import BaseModel, Field


class ProviderResult(BaseModel):
    """What a provider returns from a successful create."""
    provider_id: str = Field(..., description="Identifier assigned by the provider")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Computed values (ids, ARNs, ...)")


class Provider(ABC):
    """
    Interface to the system that actually creates, mutates and destroys
    infrastructure.

    The engine never inspects resource schemas: attribute values reach the
    provider with every reference already resolved. Failures must be raised
    as ProviderError; set retryable=True for transient errors so a
    RetryingProvider can retry them.
    """

    name = "abstract"

    @abstractmethod
    def create(self, resource_type: str, attributes: Dict[str, Any]) -> ProviderResult:
        """
        Create a resource.

        Args:
            resource_type: Resource type (e.g. aws_vpc)
            attributes: Fully resolved attribute values

        Returns:
            ProviderResult with the new provider id and outputs
        """
        pass

    @abstractmethod
    def update(self, provider_id: str, changed_attributes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a resource in place.

        Args:
            provider_id: Id returned by create
            changed_attributes: Only the attributes that changed (None = unset)

        Returns:
            Updated outputs
        """
        pass

    @abstractmethod
    def destroy(self, provider_id: str) -> None:
        """Destroy a resource. Returning normally acknowledges the destroy."""
        pass
