"""CI/CD artifact generation from plans and apply results."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from ..apply.models import ApplyResult
from ..planning.models import Plan
from ..utils.errors import InfraPlanError
from ..utils.logging import get_logger

logger = get_logger("report.artifact")

ARTIFACT_FORMAT_VERSION = "1.0.0"


def _write_json(path: Path, data: Dict[str, Any]) -> None:
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, default=str)
        logger.debug(f"Written {path.name}: {path}")
    except (OSError, TypeError) as e:
        raise InfraPlanError(f"Failed to write {path.name}: {e}")


def generate_artifacts(plan: Plan, output_dir: Path, apply_result: Optional[ApplyResult] = None) -> None:
    """
    Generate CI/CD artifacts.

    Creates the following files in output_dir:
    - plan.json: Full plan (references as ${...}, unknown values spelled out)
    - summary.json: Action counts and, after an apply, the outcome
    - apply_result.json: Per-action apply status (only with apply_result)
    - metadata.json: Report metadata

    Args:
        plan: Plan that was shown or applied
        output_dir: Directory to write artifacts to
        apply_result: Optional result of applying the plan

    Raises:
        InfraPlanError: If a file cannot be written
    """
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InfraPlanError(f"Failed to create output directory: {e}")

    _write_json(output_dir / "plan.json", plan.render())

    summary: Dict[str, Any] = {
        "changes": plan.summary.model_dump(),
        "action_count": len(plan.actions),
        "has_changes": not plan.is_empty,
    }
    if apply_result is not None:
        summary["outcome"] = apply_result.outcome
        summary["statuses"] = apply_result.counts()
        _write_json(output_dir / "apply_result.json", apply_result.model_dump())
    _write_json(output_dir / "summary.json", summary)

    from .. import __version__
    metadata = {
        "infraplan_version": __version__,
        "artifact_format_version": ARTIFACT_FORMAT_VERSION,
        "state_serial": plan.state_serial,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "generator": "infraplan apply" if apply_result is not None else "infraplan plan",
    }
    _write_json(output_dir / "metadata.json", metadata)

    logger.info(f"Generated artifacts in: {output_dir}")
