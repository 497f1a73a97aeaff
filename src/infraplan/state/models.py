"""Pydantic models for applied state."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from ..ingest.expressions import walk_path

STATE_FORMAT_VERSION = 1


class StateRecord(BaseModel):
    """Last-applied snapshot of one resource instance."""
    address: str = Field(..., description="Instance address")
    resource_type: str = Field(..., description="Resource type")
    provider_id: str = Field(..., description="Identifier assigned by the provider")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Attribute values as applied (references resolved)")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Provider-computed values (ids, ARNs, ...)")
    dependencies: List[str] = Field(default_factory=list, description="Addresses this instance depended on when applied")

    def lookup(self, attribute: str) -> Any:
        """
        Value of an attribute for reference resolution.

        'id' is the provider id; outputs take precedence over declared
        attributes. Dotted paths walk into nested values.

        Raises:
            KeyError: If the attribute is not known
        """
        if attribute == "id":
            return self.provider_id
        segments = attribute.split(".")
        merged = {**self.attributes, **self.outputs}
        return walk_path(merged, segments)


class StateSnapshot(BaseModel):
    """Point-in-time copy of every state record, keyed by address in apply order."""
    version: int = Field(default=STATE_FORMAT_VERSION, description="State format version")
    serial: int = Field(default=0, ge=0, description="Incremented on every write")
    records: Dict[str, StateRecord] = Field(default_factory=dict)

    def get(self, address: str) -> Optional[StateRecord]:
        return self.records.get(address)

    def addresses(self) -> List[str]:
        return list(self.records)

    def __contains__(self, address: str) -> bool:
        return address in self.records

    def __len__(self) -> int:
        return len(self.records)
