"""Pydantic models for plans and plan actions."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from .values import render_value


class ActionType(str, Enum):
    """Plan action types. NoOp instances are never emitted."""
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


class AttributeChange(BaseModel):
    """Before/after values of one attribute, for display."""
    before: Any = None
    after: Any = None


class PlanAction(BaseModel):
    """One provider call bound to one resource-instance identity."""
    id: str = Field(..., description="Unique action id: '<address>:<action>'")
    address: str = Field(..., description="Instance address")
    resource_type: str = Field(..., description="Resource type")
    action: ActionType = Field(..., description="create, update or destroy")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Full attributes (create) or changed attributes (update); references unresolved")
    changes: Dict[str, AttributeChange] = Field(default_factory=dict, description="Per-attribute before/after for display")
    provider_id: Optional[str] = Field(None, description="Provider id of the existing instance (update/destroy)")
    dependencies: List[str] = Field(default_factory=list, description="Graph dependencies recorded in state after apply")
    requires: List[str] = Field(default_factory=list, description="Action ids that must finish first")
    replacement: bool = Field(False, description="Part of a destroy-then-create replacement")
    reason: Optional[str] = Field(None, description="Why the action was planned")

    class Config:
        """Pydantic config."""
        use_enum_values = True

    @staticmethod
    def make_id(address: str, action: str) -> str:
        return f"{address}:{action}"

    def render(self) -> Dict[str, Any]:
        """JSON-safe dict (references as ${...}, unknowns spelled out)."""
        data = self.model_dump(exclude={"attributes", "changes"})
        data["attributes"] = render_value(self.attributes)
        data["changes"] = {
            key: {"before": render_value(change.before), "after": render_value(change.after)}
            for key, change in self.changes.items()
        }
        return data


class PlanSummary(BaseModel):
    """Action counts for a plan."""
    create: int = 0
    update: int = 0
    destroy: int = 0
    replace: int = 0


class Plan(BaseModel):
    """Ordered action list that reconciles declarations with last-known state."""
    actions: List[PlanAction] = Field(default_factory=list)
    summary: PlanSummary = Field(default_factory=PlanSummary)
    state_serial: int = Field(0, description="Serial of the state snapshot the plan was computed from")

    @property
    def is_empty(self) -> bool:
        return not self.actions

    def get(self, action_id: str) -> Optional[PlanAction]:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def render(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.model_dump(),
            "state_serial": self.state_serial,
            "actions": [action.render() for action in self.actions],
        }
