"""
Reporting adapters for API Drift.

This module renders drift findings for host tools: plain messages, JSON,
flake8, and external analysis processes whose output is filtered for drift.
Each finding can carry a suggestion on how to handle it.
"""

from apidrift.adapters.external import (
    ExternalTool,
    ToolRunResult,
    filter_drifts,
    run_tool,
    run_tools,
)
from apidrift.adapters.messages import (
    DRIFT_MARKERS,
    ISSUE_CODES,
    Issue,
    JsonAdapter,
    MessageAdapter,
    ReportingAdapter,
    format_finding,
    suggestion_for,
)
from apidrift.adapters.suggestions import ClassKind, determine_class_kind, suggest_for

__all__ = [
    "DRIFT_MARKERS",
    "ISSUE_CODES",
    "ClassKind",
    "ExternalTool",
    "Issue",
    "JsonAdapter",
    "MessageAdapter",
    "ReportingAdapter",
    "ToolRunResult",
    "determine_class_kind",
    "filter_drifts",
    "format_finding",
    "run_tool",
    "run_tools",
    "suggest_for",
    "suggestion_for",
]
