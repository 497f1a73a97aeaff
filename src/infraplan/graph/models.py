"""Pydantic model for expanded resource instances."""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


class ResourceInstance(BaseModel):
    """One instance of a declaration after count/for_each expansion."""
    address: str = Field(..., description="Unique instance address, e.g. aws_subnet.public[0]")
    type: str = Field(..., description="Resource type")
    name: str = Field(..., description="Declaration name")
    index: Optional[Union[int, str]] = Field(None, description="count index or for_each key")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Attributes with Reference objects")
    dependencies: List[str] = Field(default_factory=list, description="Addresses this instance depends on")
    position: int = Field(0, description="Declaration order, used for stable tie-breaks")

    class Config:
        frozen = True
