"""
tagspawn - launch error classification and user-facing reporting.

File: src/tagspawn/reporting/classifier.py

Purpose
- Map free-form launch error strings onto a small set of classes, each with a
  short user message and actionable suggestions.
- Summarize a batch of spawn results (counts per class, success rate,
  recommendations) and render single errors for a terminal.

Matching is case-insensitive substring matching, checked in a fixed order.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from tagspawn.domain.models import ErrorPhase, PhaseError, SpawnResult, StructuredError

if TYPE_CHECKING:
    from enum import StrEnum
else:
    try:
        from enum import StrEnum
    except ImportError:
        from enum import Enum

        class StrEnum(str, Enum):
            """Compatibility fallback for Python < 3.11."""


class ErrorClass(StrEnum):
    COMMAND_NOT_FOUND = "COMMAND_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_COMMAND = "INVALID_COMMAND"
    TIMEOUT = "TIMEOUT"
    TAG_RESOLUTION_FAILED = "TAG_RESOLUTION_FAILED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class Classification:
    error_class: ErrorClass
    user_message: str


_TAG_WORD: Final[re.Pattern[str]] = re.compile(r"\btags?\b")


def classify_error(message: object) -> Classification:
    """Classify a launch error message."""

    if not isinstance(message, str):
        return Classification(ErrorClass.UNKNOWN, "No error message provided")

    lowered = message.lower()
    if "tag resolution failed" in lowered:
        return Classification(
            ErrorClass.TAG_RESOLUTION_FAILED, "Could not resolve tag specification"
        )
    if "no such file or directory" in lowered or "command not found" in lowered:
        return Classification(ErrorClass.COMMAND_NOT_FOUND, "Command not found in PATH")
    if "permission denied" in lowered:
        return Classification(
            ErrorClass.PERMISSION_DENIED, "Insufficient permissions to execute"
        )
    if "no command to execute" in lowered or not message.strip():
        return Classification(ErrorClass.INVALID_COMMAND, "Empty or invalid command")
    if "timeout" in lowered or "timed out" in lowered:
        return Classification(ErrorClass.TIMEOUT, "Operation timed out")
    if _TAG_WORD.search(lowered):
        return Classification(
            ErrorClass.TAG_RESOLUTION_FAILED, f"Tag-related error: {message}"
        )
    return Classification(ErrorClass.UNKNOWN, f"Unclassified error: {message}")


def suggestions_for(error_class: ErrorClass, *, app_name: str | None = None) -> tuple[str, ...]:
    """Three actionable suggestions for ``error_class``."""

    if error_class is ErrorClass.COMMAND_NOT_FOUND:
        app = app_name or "application"
        return (
            f"Check if '{app}' is installed",
            "Verify the command name is spelled correctly",
            "Add the application's directory to your PATH",
        )
    if error_class is ErrorClass.PERMISSION_DENIED:
        return (
            "Check file permissions for the executable",
            "Ensure you have execute permissions",
            "Try running with appropriate privileges",
        )
    if error_class is ErrorClass.INVALID_COMMAND:
        return (
            "Provide a valid command to execute",
            "Check command syntax",
            "Ensure command is not empty",
        )
    if error_class is ErrorClass.TIMEOUT:
        return (
            "Increase timeout value for slow-starting applications",
            "Check if application started but didn't create a window",
            "Try spawning manually to test behavior",
        )
    if error_class is ErrorClass.TAG_RESOLUTION_FAILED:
        return (
            'Check tag specification format (0, +N, -N, N, or "name")',
            "Ensure target tag exists or can be created",
            "Verify screen has available tag slots",
        )
    return (
        "Check application logs for more details",
        "Try spawning the application manually",
        "Report this issue if problem persists",
    )


_RECOMMENDATIONS: Final[Mapping[ErrorClass, str]] = {
    ErrorClass.COMMAND_NOT_FOUND: "Some applications may not be installed",
    ErrorClass.PERMISSION_DENIED: "Permission issues detected - check file permissions",
    ErrorClass.TAG_RESOLUTION_FAILED: "Some resources had no usable slot - check tag specifications",
    ErrorClass.TIMEOUT: "Some applications are slow to start - consider longer timeouts",
}


@dataclass(frozen=True, slots=True)
class SpawnSummary:
    total_attempts: int
    successful: int
    failed: int
    error_types: dict[str, int] = field(default_factory=dict)
    recommendations: tuple[str, ...] = ()

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.successful / self.total_attempts

    def to_dict(self) -> dict[str, object]:
        return {
            "total_attempts": self.total_attempts,
            "successful": self.successful,
            "failed": self.failed,
            "error_types": dict(self.error_types),
            "recommendations": list(self.recommendations),
            "success_rate": self.success_rate,
        }


def summarize_spawn_results(results: Iterable[SpawnResult]) -> SpawnSummary:
    total = 0
    successful = 0
    counts: dict[str, int] = {}
    for result in results:
        total += 1
        if result.success:
            successful += 1
            continue
        error_type = (result.error.classified_type if result.error else None) or "UNKNOWN"
        counts[error_type] = counts.get(error_type, 0) + 1

    failed = total - successful
    recommendations = [
        text for error_class, text in _RECOMMENDATIONS.items() if error_class.value in counts
    ]
    if failed > successful:
        recommendations.append("Consider reviewing project configuration")
    return SpawnSummary(
        total_attempts=total,
        successful=successful,
        failed=failed,
        error_types=counts,
        recommendations=tuple(recommendations),
    )


def format_error_for_user(error: StructuredError, *, subject: str | None = None) -> str:
    """Multi-line terminal report for one error."""

    target = subject or error.resource_id or str(error.context.get("command") or "resource")
    verb = "spawn" if error.phase is ErrorPhase.SPAWNING else "place"
    lines = [f"✗ Failed to {verb} {target}", f"  Error: {error.message}"]
    if error.suggestions:
        lines.append("  Suggestions:")
        lines.extend(f"    • {item}" for item in error.suggestions)
    return "\n".join(lines)


_PHASE_HEADINGS: Final[Mapping[ErrorPhase, str]] = {
    ErrorPhase.TAG_RESOLUTION: "TAG RESOLUTION ERRORS:",
    ErrorPhase.SPAWNING: "SPAWNING ERRORS:",
}


def format_errors_by_phase(errors: Sequence[PhaseError]) -> str:
    """Group phase errors under one heading per phase, in first-seen phase order."""

    if not errors:
        return "No errors to display"
    grouped: dict[ErrorPhase, list[PhaseError]] = {}
    for entry in errors:
        grouped.setdefault(entry.phase, []).append(entry)

    blocks: list[str] = []
    for phase, entries in grouped.items():
        lines = [_PHASE_HEADINGS[phase]]
        for entry in entries:
            lines.append(f"  ✗ {entry.resource_id or 'unknown'}: {entry.error.message}")
            lines.extend(f"    • {item}" for item in entry.error.suggestions)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


__all__ = [
    "Classification",
    "ErrorClass",
    "SpawnSummary",
    "classify_error",
    "format_error_for_user",
    "format_errors_by_phase",
    "suggestions_for",
    "summarize_spawn_results",
]
