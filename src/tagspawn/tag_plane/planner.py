"""
tagspawn - batch placement planner.

File: src/tagspawn/tag_plane/planner.py

Purpose
- Resolve every resource of one start request against a single environment
  snapshot and create each missing named slot exactly once.

Behavior
- Per-resource problems never raise. Invalid specifications become
  ``TAG_SPEC_INVALID`` errors and failed creations become ``TAG_CREATION_FAILED``
  errors for every resource that asked for the name.
- Overflowing relative/absolute targets are assigned the current slot and carry
  a ``TAG_FALLBACK_USED`` warning.
- Only structural misuse (no resource list, duplicate ids, a snapshot that
  cannot be read) raises :class:`TagMapperError`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from tagspawn.adapters.environment import EnvironmentAdapter, read_snapshot
from tagspawn.domain.errors import SlotCreationError, TagMapperError, WindowManagerError
from tagspawn.domain.models import (
    EnvironmentSnapshot,
    ErrorKind,
    ErrorPhase,
    Resource,
    Slot,
    SlotCreation,
    StructuredError,
    TagAssignment,
    TagOperationPlan,
)
from tagspawn.tag_plane.resolver import Resolution, resolve
from tagspawn.tag_plane.spec_parser import try_parse

logger = logging.getLogger(__name__)

_INVALID_SPEC_SUGGESTIONS: tuple[str, ...] = (
    "Use an integer offset (0 for the current slot), a digit string 1-9, or a slot name",
    "Slot names must start with a letter or underscore",
)
_CREATION_SUGGESTIONS: tuple[str, ...] = (
    "Check that the window manager is running and reachable",
    "Try an existing slot name or a numeric placement instead",
)


@dataclass(frozen=True, slots=True)
class _Ordered:
    position: int
    error: StructuredError


class BatchPlanner:
    """Plan slot assignments for a batch of resources."""

    def __init__(self, environment: EnvironmentAdapter) -> None:
        self._environment = environment

    def plan(self, resources: Sequence[Resource] | None) -> TagOperationPlan:
        if resources is None:
            raise TagMapperError("resource list is required")
        if isinstance(resources, (str, bytes)) or not isinstance(resources, Sequence):
            raise TagMapperError(
                f"resource list must be a sequence, got {type(resources).__name__}"
            )
        _ensure_unique(resources)

        snapshot = self._snapshot()
        errors: list[_Ordered] = []
        warnings: list[StructuredError] = []
        resolutions: dict[str, Resolution] = {}
        pending: dict[str, list[tuple[int, str]]] = {}

        for position, resource in enumerate(resources):
            outcome = try_parse(resource.raw_spec)
            if outcome.spec is None:
                logger.info(
                    "invalid placement for %s: %s",
                    resource.id,
                    outcome.error,
                    extra={"resource_id": resource.id},
                )
                errors.append(_Ordered(position, _invalid_spec_error(resource, outcome.error)))
                continue

            resolution = resolve(outcome.spec, snapshot, resource_id=resource.id)
            resolutions[resource.id] = resolution
            if resolution.warning is not None:
                warnings.append(resolution.warning)
            if resolution.pending_name is not None:
                pending.setdefault(resolution.pending_name, []).append((position, resource.id))

        created, creations, creation_errors = self._create_pending(pending)
        errors.extend(creation_errors)

        assignments: list[TagAssignment] = []
        for resource in resources:
            resolution = resolutions.get(resource.id)
            if resolution is None:
                continue
            assignment = _assignment_for(resolution, created)
            if assignment is not None:
                assignments.append(assignment)

        errors.sort(key=lambda item: item.position)
        plan = TagOperationPlan(
            assignments=tuple(assignments),
            creations=tuple(creations),
            warnings=tuple(warnings),
            errors=tuple(item.error for item in errors),
        )
        logger.info(
            "placement plan ready: %d assigned, %d created, %d warnings, %d errors",
            len(plan.assignments),
            plan.total_created,
            len(plan.warnings),
            len(plan.errors),
        )
        return plan

    def _snapshot(self) -> EnvironmentSnapshot:
        try:
            return read_snapshot(self._environment)
        except (WindowManagerError, ValueError) as exc:
            raise TagMapperError(f"could not read environment state: {exc}") from exc

    def _create_pending(
        self, pending: dict[str, list[tuple[int, str]]]
    ) -> tuple[dict[str, tuple[Slot, bool]], list[SlotCreation], list[_Ordered]]:
        created: dict[str, tuple[Slot, bool]] = {}
        creations: list[SlotCreation] = []
        errors: list[_Ordered] = []

        # dict preserves first-seen order of names
        for name, requesters in pending.items():
            try:
                existing = self._environment.find_slot_by_name(name)
                if existing is not None:
                    created[name] = (existing, False)
                    continue
                slot = self._environment.create_named_slot(name)
            except (SlotCreationError, WindowManagerError, ValueError) as exc:
                logger.warning("slot creation failed for %r: %s", name, exc)
                for position, resource_id in requesters:
                    errors.append(_Ordered(position, _creation_error(name, resource_id, exc)))
                continue
            created[name] = (slot, True)
            creations.append(SlotCreation(name=name, slot=slot))
            logger.info(
                "created slot %r at index %d for %d resource(s)",
                name,
                slot.index,
                len(requesters),
            )
        return created, creations, errors


def plan(resources: Sequence[Resource] | None, environment: EnvironmentAdapter) -> TagOperationPlan:
    """Convenience wrapper around :class:`BatchPlanner`."""

    return BatchPlanner(environment).plan(resources)


def _ensure_unique(resources: Sequence[Resource]) -> None:
    seen: set[str] = set()
    for position, resource in enumerate(resources):
        if not isinstance(resource, Resource):
            raise TagMapperError(
                f"resources[{position}] must be a Resource, got {type(resource).__name__}"
            )
        if resource.id in seen:
            raise TagMapperError(f"duplicate resource id {resource.id!r}")
        seen.add(resource.id)


def _assignment_for(
    resolution: Resolution, created: dict[str, tuple[Slot, bool]]
) -> TagAssignment | None:
    if resolution.pending_name is not None:
        entry = created.get(resolution.pending_name)
        if entry is None:
            return None
        slot, was_created = entry
        return TagAssignment(
            resource_id=resolution.resource_id,
            resolved_index=slot.index,
            resolved_name=slot.name,
            kind=resolution.kind,
            created=was_created,
        )
    if resolution.slot is None:
        return None
    return TagAssignment(
        resource_id=resolution.resource_id,
        resolved_index=resolution.slot.index,
        resolved_name=resolution.slot.name,
        kind=resolution.kind,
        fallback=resolution.fallback,
    )


def _invalid_spec_error(resource: Resource, message: str | None) -> StructuredError:
    return StructuredError(
        type=ErrorKind.TAG_SPEC_INVALID,
        message=message or "invalid tag specification",
        phase=ErrorPhase.TAG_RESOLUTION,
        resource_id=resource.id,
        context={"tag_spec": _spec_repr(resource.raw_spec)},
        suggestions=_INVALID_SPEC_SUGGESTIONS,
        category="tag_resolution",
    )


def _creation_error(name: str, resource_id: str, exc: Exception) -> StructuredError:
    reason = exc.reason if isinstance(exc, SlotCreationError) else str(exc)
    return StructuredError(
        type=ErrorKind.TAG_CREATION_FAILED,
        message=f"failed to create slot '{name}': {reason}",
        phase=ErrorPhase.TAG_RESOLUTION,
        resource_id=resource_id,
        context={"slot_name": name},
        suggestions=_CREATION_SUGGESTIONS,
        category="tag_resolution",
    )


def _spec_repr(raw: object) -> object:
    if raw is None or isinstance(raw, (str, int)):
        return raw
    return repr(raw)


__all__ = ["BatchPlanner", "plan"]
