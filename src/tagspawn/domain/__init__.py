"""
tagspawn - domain layer

File: src/tagspawn/domain/__init__.py

Purpose
- Domain types shared across planes: specifications, slots, resources, plans,
  spawn results, and the combined response.
- Keep this layer free of IO side effects.
"""

from tagspawn.domain.errors import (
    RequestError,
    SlotCreationError,
    TagMapperError,
    TagSpecError,
    WindowManagerError,
)
from tagspawn.domain.models import (
    AbsoluteSpec,
    CombinedResponse,
    EnvironmentSnapshot,
    ErrorKind,
    ErrorPhase,
    FailureResponse,
    NamedSpec,
    PhaseError,
    RelativeSpec,
    ResolvedSlot,
    Resource,
    Slot,
    SlotCreation,
    SpawnedResource,
    SpawnResult,
    SpecKind,
    Specification,
    StructuredError,
    SuccessResponse,
    TagAssignment,
    TagOperationPlan,
)

__all__ = [
    "AbsoluteSpec",
    "CombinedResponse",
    "EnvironmentSnapshot",
    "ErrorKind",
    "ErrorPhase",
    "FailureResponse",
    "NamedSpec",
    "PhaseError",
    "RelativeSpec",
    "RequestError",
    "ResolvedSlot",
    "Resource",
    "Slot",
    "SlotCreation",
    "SlotCreationError",
    "SpawnResult",
    "SpawnedResource",
    "SpecKind",
    "Specification",
    "StructuredError",
    "SuccessResponse",
    "TagAssignment",
    "TagMapperError",
    "TagOperationPlan",
    "TagSpecError",
    "WindowManagerError",
]
