"""Error classification and combined-response construction."""

from tagspawn.reporting.classifier import (
    Classification,
    ErrorClass,
    SpawnSummary,
    classify_error,
    format_error_for_user,
    format_errors_by_phase,
    suggestions_for,
    summarize_spawn_results,
)
from tagspawn.reporting.response import build

__all__ = [
    "Classification",
    "ErrorClass",
    "SpawnSummary",
    "build",
    "classify_error",
    "format_error_for_user",
    "format_errors_by_phase",
    "suggestions_for",
    "summarize_spawn_results",
]
