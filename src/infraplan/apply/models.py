"""Pydantic models for apply results."""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class ActionStatus(str, Enum):
    """Terminal (or never-reached) status of one plan action."""
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"
    IN_FLIGHT_AT_CANCEL = "in_flight_at_cancel"
    NOT_STARTED = "not_started"


class ApplyOutcome(str, Enum):
    """Overall result of an apply run."""
    APPLIED = "applied"
    PARTIALLY_APPLIED = "partially_applied"
    FAILED = "failed"
    CANCELLED = "cancelled"


_STATUS_SEVERITY = {
    ActionStatus.APPLIED: 0,
    ActionStatus.IN_FLIGHT_AT_CANCEL: 1,
    ActionStatus.NOT_STARTED: 2,
    ActionStatus.SKIPPED: 3,
    ActionStatus.FAILED: 4,
}


class ActionResult(BaseModel):
    """What happened to one plan action."""
    action_id: str
    address: str
    action: str
    status: ActionStatus = Field(ActionStatus.NOT_STARTED, validate_default=True)
    error: Optional[str] = Field(None, description="Root cause for failed actions")
    error_type: Optional[str] = None
    blocked_by: Optional[str] = Field(None, description="Action id whose failure caused the skip")

    class Config:
        """Pydantic config."""
        use_enum_values = True
        validate_assignment = True


class ApplyResult(BaseModel):
    """Per-action results plus the overall outcome."""
    outcome: ApplyOutcome
    results: List[ActionResult] = Field(default_factory=list)
    cancelled: bool = False

    class Config:
        """Pydantic config."""
        use_enum_values = True

    def by_status(self, status: ActionStatus) -> List[ActionResult]:
        return [result for result in self.results if result.status == status]

    @property
    def applied(self) -> List[ActionResult]:
        return self.by_status(ActionStatus.APPLIED)

    @property
    def failed(self) -> List[ActionResult]:
        return self.by_status(ActionStatus.FAILED)

    @property
    def skipped(self) -> List[ActionResult]:
        return self.by_status(ActionStatus.SKIPPED)

    def instance_statuses(self) -> Dict[str, str]:
        """Worst status per instance address (a replacement has two actions)."""
        statuses: Dict[str, str] = {}
        for result in self.results:
            current = statuses.get(result.address)
            if current is None or _STATUS_SEVERITY[ActionStatus(result.status)] > _STATUS_SEVERITY[ActionStatus(current)]:
                statuses[result.address] = ActionStatus(result.status).value
        return statuses

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ActionStatus}
        for result in self.results:
            counts[ActionStatus(result.status).value] += 1
        return counts
