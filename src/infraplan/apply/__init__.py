from .executor import ApplyExecutor
from .models import ActionResult, ActionStatus, ApplyOutcome, ApplyResult

__all__ = [
    "ApplyExecutor",
    "ActionResult",
    "ActionStatus",
    "ApplyOutcome",
    "ApplyResult",
]
