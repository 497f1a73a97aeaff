"""Pydantic models for engine configuration."""

from typing import Dict, Optional
from pydantic import BaseModel, Field
from ..ingest.models import ResourceTypeSchema


class EngineSettings(BaseModel):
    """Planner/executor settings."""
    max_workers: int = Field(1, ge=1, description="Concurrent provider calls during apply (1 = sequential)")
    state_path: str = Field(".infraplan/state.json", description="State file location")


class HttpSettings(BaseModel):
    base_url: Optional[str] = Field(None, description="REST provider base URL")
    timeout: float = Field(30.0, gt=0)


class RetrySettings(BaseModel):
    attempts: int = Field(3, ge=1, description="Total attempts per provider call (1 = no retry)")
    backoff_multiplier: float = Field(1.0, ge=0)
    backoff_max: float = Field(30.0, ge=0)


class ProviderSettings(BaseModel):
    name: str = Field("local", description="Provider name from the registry")
    local_path: str = Field(".infraplan/resources.json", description="Resource file for the local provider")
    http: HttpSettings = Field(default_factory=HttpSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)


class EngineConfig(BaseModel):
    """Complete infraplan configuration."""
    engine: EngineSettings = Field(default_factory=EngineSettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    strict_types: bool = Field(False, description="Treat state of undeclared, unconfigured types as corrupt")
    resource_types: Dict[str, ResourceTypeSchema] = Field(default_factory=dict)

    def with_resource_types(self, extra: Dict[str, ResourceTypeSchema]) -> Dict[str, ResourceTypeSchema]:
        """Configured schemas extended by declaration-file schemas (file wins per type)."""
        merged = dict(self.resource_types)
        merged.update(extra)
        return merged
