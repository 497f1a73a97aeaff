"""Presentation layer - human-friendly formatting."""

from .human_formatter import format_plan, format_apply_result, format_graph, format_state, format_record

__all__ = ["format_plan", "format_apply_result", "format_graph", "format_state", "format_record"]
