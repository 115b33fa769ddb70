"""Combine a placement plan and spawn results into the final response."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from tagspawn.domain.errors import TagMapperError
from tagspawn.domain.models import (
    CombinedResponse,
    ErrorPhase,
    FailureResponse,
    PhaseError,
    Resource,
    SpawnedResource,
    SpawnResult,
    SuccessResponse,
    TagOperationPlan,
)

logger = logging.getLogger(__name__)


def build(
    project_name: str,
    plan: TagOperationPlan,
    spawn_results: Sequence[SpawnResult],
    resources: Sequence[Resource],
) -> tuple[bool, CombinedResponse]:
    """Decide overall success and shape the response.

    The invocation fails only when nothing launched out of a non-empty batch.
    Planner errors are listed before launch errors; skipped launches are
    already represented by their planner error and are not repeated.
    """

    results_by_id = {result.resource_id: result for result in spawn_results}
    planner_failed = {error.resource_id for error in plan.errors}
    for resource in resources:
        if resource.id not in results_by_id and resource.id not in planner_failed:
            raise TagMapperError(f"no outcome recorded for resource {resource.id!r}")

    tag_errors = tuple(
        PhaseError(phase=ErrorPhase.TAG_RESOLUTION, resource_id=error.resource_id, error=error)
        for error in plan.errors
    )
    spawn_errors = tuple(
        PhaseError(phase=ErrorPhase.SPAWNING, resource_id=result.resource_id, error=result.error)
        for result in spawn_results
        if not result.success and not result.skipped and result.error is not None
    )

    success_count = sum(1 for result in spawn_results if result.success)
    total_attempted = len(resources)

    if success_count == 0 and total_attempted > 0:
        logger.error(
            "no resources launched for %s: %d error(s)",
            project_name,
            len(tag_errors) + len(spawn_errors),
        )
        return False, FailureResponse(
            project_name=project_name,
            errors=tag_errors + spawn_errors,
            total_attempted=total_attempted,
            success_count=0,
        )

    spawned: list[SpawnedResource] = []
    for resource in resources:
        result = results_by_id.get(resource.id)
        if result is None or not result.success or result.pid is None:
            continue
        spawned.append(
            SpawnedResource(
                name=resource.id,
                pid=result.pid,
                session_id=result.session_id,
                command=resource.command,
                tag_spec=resource.raw_spec,
            )
        )

    response = SuccessResponse(
        project_name=project_name,
        spawned_resources=tuple(spawned),
        tag_operations=plan,
        tag_errors=tag_errors,
        spawn_errors=spawn_errors,
    )
    if response.has_warnings:
        logger.warning(
            "partial launch for %s: %d of %d resources started",
            project_name,
            response.total_spawned,
            total_attempted,
        )
    else:
        logger.info("launched %d resource(s) for %s", response.total_spawned, project_name)
    return True, response


__all__ = ["build"]
