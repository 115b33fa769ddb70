"""Resolve one parsed specification against one environment snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tagspawn.domain.errors import TagMapperError
from tagspawn.domain.models import (
    AbsoluteSpec,
    EnvironmentSnapshot,
    ErrorKind,
    ErrorPhase,
    NamedSpec,
    RelativeSpec,
    Slot,
    SpecKind,
    Specification,
    StructuredError,
)

logger = logging.getLogger(__name__)

_FALLBACK_SUGGESTIONS: tuple[str, ...] = (
    "Use a relative offset or absolute index that exists on the current screen",
    "Use a named slot to have it created on demand",
)


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of resolving a single specification.

    ``slot`` is set for existing slots (including fallbacks). ``pending_name`` is
    set instead when a named slot has to be created by the batch planner.
    """

    resource_id: str
    kind: SpecKind
    slot: Slot | None = None
    pending_name: str | None = None
    warning: StructuredError | None = None

    @property
    def needs_creation(self) -> bool:
        return self.pending_name is not None

    @property
    def fallback(self) -> bool:
        return self.warning is not None


def resolve(
    spec: Specification,
    snapshot: EnvironmentSnapshot,
    *,
    resource_id: str,
) -> Resolution:
    """Resolve ``spec`` without touching the environment.

    Relative and absolute targets that do not exist fall back to the current
    slot and carry a ``TAG_FALLBACK_USED`` warning. Unknown names are returned as
    pending creations; this function never creates slots.
    """

    if isinstance(spec, NamedSpec):
        existing = snapshot.slot_named(spec.name)
        if existing is not None:
            return Resolution(resource_id=resource_id, kind=spec.kind, slot=existing)
        return Resolution(resource_id=resource_id, kind=spec.kind, pending_name=spec.name)

    if isinstance(spec, RelativeSpec):
        target = snapshot.current_index + spec.offset
    elif isinstance(spec, AbsoluteSpec):
        target = spec.index
    else:
        raise TagMapperError(f"unsupported specification type: {type(spec).__name__}")

    slot = snapshot.slot_at(target)
    if slot is not None:
        return Resolution(resource_id=resource_id, kind=spec.kind, slot=slot)

    fallback = snapshot.current_slot
    if fallback is None:
        raise TagMapperError(
            f"environment snapshot has no slot at current index {snapshot.current_index}"
        )

    logger.warning(
        "slot overflow for %s: target %d does not exist, using current slot %d",
        resource_id,
        target,
        fallback.index,
        extra={"resource_id": resource_id},
    )
    warning = StructuredError(
        type=ErrorKind.TAG_FALLBACK_USED,
        message=(
            f"slot {target} does not exist for resource '{resource_id}'; "
            f"using current slot {fallback.index}"
        ),
        phase=ErrorPhase.TAG_RESOLUTION,
        resource_id=resource_id,
        context={
            "cause": ErrorKind.TAG_OVERFLOW.value,
            "spec_kind": spec.kind.value,
            "target_index": target,
            "fallback_index": fallback.index,
            "current_index": snapshot.current_index,
            "available_indices": [item.index for item in snapshot.slots],
        },
        suggestions=_FALLBACK_SUGGESTIONS,
        category="tag_resolution",
    )
    return Resolution(resource_id=resource_id, kind=spec.kind, slot=fallback, warning=warning)


__all__ = ["Resolution", "resolve"]
