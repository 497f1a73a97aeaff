"""Pydantic models for resource declarations."""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, model_validator


class ResourceTypeSchema(BaseModel):
    """Per-type rules the plan engine needs (which attributes force replacement)."""
    replace_on_change: List[str] = Field(default_factory=list, description="Attributes whose change requires destroy-then-create")


class ResourceDeclaration(BaseModel):
    """A typed, named description of desired infrastructure state."""
    type: str = Field(..., description="Resource type (e.g. aws_vpc)")
    name: str = Field(..., description="Declaration name, unique per type")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Attribute values, may contain ${...} expressions")
    count: Optional[int] = Field(None, ge=0, description="Number of indexed instances")
    for_each: Optional[Union[List[Any], Dict[str, Any]]] = Field(None, description="Collection expanded into keyed instances")
    depends_on: List[str] = Field(default_factory=list, description="Explicit dependencies by address")

    class Config:
        """Pydantic config."""
        frozen = True

    @model_validator(mode="after")
    def _check_cardinality(self) -> "ResourceDeclaration":
        if self.count is not None and self.for_each is not None:
            raise ValueError(f"{self.type}.{self.name}: 'count' and 'for_each' are mutually exclusive")
        return self

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    @property
    def is_expanded(self) -> bool:
        """True when the declaration produces an indexed family of instances."""
        return self.count is not None or self.for_each is not None


class DeclarationSet(BaseModel):
    """Ordered declarations plus the variable bindings and type rules they were loaded with."""
    declarations: List[ResourceDeclaration] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)
    resource_types: Dict[str, ResourceTypeSchema] = Field(default_factory=dict)
    source: Optional[str] = Field(None, description="File the declarations were loaded from")
