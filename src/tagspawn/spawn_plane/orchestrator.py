"""
tagspawn - spawn orchestrator.

File: src/tagspawn/spawn_plane/orchestrator.py

Purpose
- Launch every resource that received a slot, strictly in input order, and
  turn each adapter outcome into a ``SpawnResult``.

Behavior
- A resource without a usable slot is recorded as a skipped failure; the
  execution adapter is not called for it.
- Adapter error strings and adapter exceptions both become ``SPAWN_FAILURE``
  structured errors with classified suggestions. One bad launch never stops
  the rest of the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from tagspawn.domain.models import (
    ErrorKind,
    ErrorPhase,
    Resource,
    SpawnResult,
    StructuredError,
    TagOperationPlan,
)
from tagspawn.observability.logging import correlation_scope
from tagspawn.reporting.classifier import ErrorClass, classify_error, suggestions_for
from tagspawn.spawn_plane.command import describe_slot, executable_name

if TYPE_CHECKING:
    from tagspawn.adapters.execution import ExecutionAdapter

logger = logging.getLogger(__name__)


def spawn_all(
    plan: TagOperationPlan,
    resources: Sequence[Resource],
    execution: ExecutionAdapter,
) -> list[SpawnResult]:
    """Launch resources sequentially; returns one result per resource, in order."""

    planner_errors = {error.resource_id: error for error in plan.errors}
    results: list[SpawnResult] = []

    for resource in resources:
        with correlation_scope(resource_id=resource.id):
            assignment = plan.assignment_for(resource.id)
            if assignment is None:
                results.append(_skipped(resource, planner_errors.get(resource.id)))
                continue

            slot = assignment.slot
            logger.info("launching %r on slot %s", resource.command, describe_slot(slot))
            try:
                outcome = execution.spawn(resource.command, slot, resource.properties())
            except Exception as exc:  # noqa: BLE001
                logger.exception("execution adapter raised for %s", resource.id)
                results.append(
                    _failed(resource, f"execution adapter raised {type(exc).__name__}: {exc}")
                )
                continue

            if outcome.error is not None or outcome.pid is None:
                logger.warning("launch failed for %s: %s", resource.id, outcome.error)
                results.append(_failed(resource, outcome.error or "no pid returned"))
                continue

            logger.info(
                "launched %s as pid %d%s",
                resource.id,
                outcome.pid,
                " (reused)" if getattr(outcome, "reused", False) else "",
            )
            results.append(
                SpawnResult(
                    resource_id=resource.id,
                    success=True,
                    pid=outcome.pid,
                    session_id=outcome.session_id,
                )
            )
    return results


def _failed(resource: Resource, message: str) -> SpawnResult:
    classification = classify_error(message)
    error = StructuredError(
        type=ErrorKind.SPAWN_FAILURE,
        message=message,
        phase=ErrorPhase.SPAWNING,
        resource_id=resource.id,
        context={"command": resource.command},
        suggestions=suggestions_for(
            classification.error_class, app_name=executable_name(resource.command) or None
        ),
        category="execution",
        classified_type=classification.error_class.value,
    )
    return SpawnResult(resource_id=resource.id, success=False, error=error)


def _skipped(resource: Resource, cause: StructuredError | None) -> SpawnResult:
    reason = cause.message if cause is not None else "no slot was assigned"
    error = StructuredError(
        type=ErrorKind.SPAWN_FAILURE,
        message=f"not launched: {reason}",
        phase=ErrorPhase.SPAWNING,
        resource_id=resource.id,
        context={
            "command": resource.command,
            "cause": cause.type.value if cause is not None else None,
        },
        suggestions=suggestions_for(ErrorClass.TAG_RESOLUTION_FAILED),
        category="tag_resolution",
        classified_type=ErrorClass.TAG_RESOLUTION_FAILED.value,
    )
    logger.info("skipping %s: %s", resource.id, reason)
    return SpawnResult(resource_id=resource.id, success=False, error=error, skipped=True)


__all__ = ["spawn_all"]
