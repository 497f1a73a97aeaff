"""Human-friendly output formatter - converts plans and apply results to readable text."""

import json
import os
from typing import Any, Dict, List, Optional, Sequence
from ..apply.models import ActionStatus, ApplyOutcome, ApplyResult
from ..graph.dependency_graph import ResourceGraph
from ..planning.models import ActionType, Plan, PlanAction
from ..planning.values import render_value
from ..state.models import StateRecord


def _use_ascii(ascii_mode: Optional[bool] = None) -> bool:
    """Resolve whether to use ASCII output (checked at format time)."""
    if ascii_mode is not None:
        return bool(ascii_mode)
    return os.environ.get("INFRAPLAN_ASCII", "").lower() in ("1", "true", "yes")


def _box(title: str, width: int = 65, ascii_mode: bool = False) -> List[str]:
    """Return box-drawing header lines."""
    b = {"tl": "+", "tr": "+", "h": "-", "v": "|"} if ascii_mode else {"tl": "┌", "tr": "┐", "h": "─", "v": "│"}
    h = b["h"] * (width - 2)
    return [
        b["tl"] + h + b["tr"],
        f"{b['v']} {title:<{width - 4}} {b['v']}",
        ("+" if ascii_mode else "└") + h + ("+" if ascii_mode else "┘"),
        "",
    ]


def _section(title: str, width: int = 65) -> List[str]:
    """Return section divider."""
    h = "-" * width
    return [h, title.center(width), h]


def _format_value(value: Any) -> str:
    rendered = render_value(value)
    if isinstance(rendered, str):
        if rendered.startswith("${") or rendered == "(known after apply)":
            return rendered
        return json.dumps(rendered)
    return json.dumps(rendered, default=str)


def _action_symbol(action: PlanAction) -> str:
    if action.replacement:
        return "-/+"
    return {
        ActionType.CREATE.value: "+",
        ActionType.UPDATE.value: "~",
        ActionType.DESTROY.value: "-",
    }[action.action]


def _action_label(action: PlanAction) -> str:
    if action.replacement:
        half = "destroy" if action.action == ActionType.DESTROY else "create"
        return f"will be replaced ({half})"
    return {
        ActionType.CREATE.value: "will be created",
        ActionType.UPDATE.value: "will be updated in-place",
        ActionType.DESTROY.value: "will be destroyed",
    }[action.action]


def _format_action(action: PlanAction) -> List[str]:
    lines = [f"  {_action_symbol(action)} {action.address} {_action_label(action)}"]
    if action.reason:
        lines.append(f"      # {action.reason}")
    if action.action == ActionType.DESTROY:
        if action.provider_id:
            lines.append(f"      id = {action.provider_id}")
        return lines

    width = max((len(key) for key in action.changes), default=0)
    for key, change in action.changes.items():
        if action.action == ActionType.CREATE:
            lines.append(f"      {key:<{width}} = {_format_value(change.after)}")
        else:
            lines.append(f"      {key:<{width}} = {_format_value(change.before)} -> {_format_value(change.after)}")
    return lines


def format_plan(plan: Plan, ascii_mode: Optional[bool] = None) -> str:
    """Format a plan as an ordered, annotated action list."""
    ascii_mode = _use_ascii(ascii_mode)
    W = 65
    lines = []
    lines.extend(_box("infraplan - Execution Plan", W, ascii_mode))

    if plan.is_empty:
        lines.append("No changes. Infrastructure matches the declarations.")
        return "\n".join(lines).rstrip() + "\n"

    lines.extend(_section("ACTIONS (in execution order)", W))
    for number, action in enumerate(plan.actions, 1):
        action_lines = _format_action(action)
        action_lines[0] = f"{number:>3}." + action_lines[0][1:]
        lines.extend(action_lines)
        if action.requires:
            lines.append(f"      after: {', '.join(action.requires)}")
    lines.append("")

    s = plan.summary
    lines.extend(_section("SUMMARY", W))
    lines.append(
        f"Plan: {s.create} to create, {s.update} to update, {s.replace} to replace, {s.destroy} to destroy."
    )
    return "\n".join(lines).rstrip() + "\n"


_OUTCOME_MESSAGES = {
    ApplyOutcome.APPLIED.value: "Apply complete.",
    ApplyOutcome.PARTIALLY_APPLIED.value: "Apply partially complete - some actions failed or were skipped.",
    ApplyOutcome.FAILED.value: "Apply failed - no action was applied.",
    ApplyOutcome.CANCELLED.value: "Apply cancelled.",
}


def format_apply_result(result: ApplyResult, ascii_mode: Optional[bool] = None) -> str:
    """Format an apply result: per-action status with root causes."""
    ascii_mode = _use_ascii(ascii_mode)
    W = 65
    ok, bad, skip = ("[OK]", "[FAILED]", "[SKIPPED]") if ascii_mode else ("✅", "❌", "⏭️ ")
    marks = {
        ActionStatus.APPLIED.value: ok,
        ActionStatus.FAILED.value: bad,
        ActionStatus.SKIPPED.value: skip,
        ActionStatus.IN_FLIGHT_AT_CANCEL.value: "[IN-FLIGHT]",
        ActionStatus.NOT_STARTED.value: "[NOT STARTED]",
    }

    lines = []
    lines.extend(_box("infraplan - Apply Result", W, ascii_mode))
    lines.append(_OUTCOME_MESSAGES[result.outcome])
    lines.append("")

    if result.results:
        lines.extend(_section("ACTIONS", W))
        for item in result.results:
            lines.append(f"{marks[item.status]} {item.action_id}")
            if item.error:
                lines.append(f"      error: {item.error}")
            if item.blocked_by:
                lines.append(f"      blocked by: {item.blocked_by}")
        lines.append("")

    counts = result.counts()
    lines.extend(_section("SUMMARY", W))
    lines.append(
        f"{counts['applied']} applied, {counts['failed']} failed, {counts['skipped']} skipped, "
        f"{counts['in_flight_at_cancel']} in flight at cancel, {counts['not_started']} not started"
    )
    return "\n".join(lines).rstrip() + "\n"


def format_graph(graph: ResourceGraph, order: Sequence[str]) -> str:
    """Resolved order with each instance's direct dependencies."""
    lines = []
    for number, address in enumerate(order, 1):
        dependencies = graph.get_dependencies(address)
        suffix = f"  <- {', '.join(dependencies)}" if dependencies else ""
        lines.append(f"{number:>3}. {address}{suffix}")
    return "\n".join(lines) + "\n"


def format_state(records: Sequence[StateRecord]) -> str:
    """One line per state record."""
    if not records:
        return "State is empty.\n"
    width = max(len(record.address) for record in records)
    return "\n".join(f"{record.address:<{width}}  {record.provider_id}" for record in records) + "\n"


def format_record(record: StateRecord) -> str:
    """Full detail of one state record."""
    lines = [f"# {record.address}", f"resource_type = {record.resource_type}", f"provider_id   = {record.provider_id}"]
    sections: Dict[str, Dict[str, Any]] = {"attributes": record.attributes, "outputs": record.outputs}
    for title, values in sections.items():
        if values:
            lines.append("")
            lines.append(f"{title}:")
            width = max(len(key) for key in values)
            for key, value in values.items():
                lines.append(f"  {key:<{width}} = {json.dumps(value, default=str)}")
    if record.dependencies:
        lines.append("")
        lines.append(f"depends on: {', '.join(record.dependencies)}")
    return "\n".join(lines) + "\n"
