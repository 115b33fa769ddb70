"""Dataclass domain models with strict validation and canonical serialization."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, NoReturn, cast

from tagspawn.constants import COMPLETE_FAILURE, MAX_ABSOLUTE_SLOT, MIN_ABSOLUTE_SLOT

try:
    from datetime import UTC
except ImportError:
    UTC = timezone.utc  # noqa: UP017

if TYPE_CHECKING:
    from enum import StrEnum
else:
    try:
        from enum import StrEnum
    except ImportError:

        class StrEnum(str, Enum):
            """Compatibility fallback for Python < 3.11."""


JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_MAX_TEXT = 8192
_MAX_ENV_ENTRIES = 256

TAG_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


class SpecKind(StrEnum):
    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    NAMED = "named"


class ErrorKind(StrEnum):
    TAG_SPEC_INVALID = "TAG_SPEC_INVALID"
    TAG_OVERFLOW = "TAG_OVERFLOW"
    TAG_FALLBACK_USED = "TAG_FALLBACK_USED"
    TAG_CREATION_FAILED = "TAG_CREATION_FAILED"
    SPAWN_FAILURE = "SPAWN_FAILURE"
    CRITICAL_TAG_MAPPER_ERROR = "CRITICAL_TAG_MAPPER_ERROR"


class ErrorPhase(StrEnum):
    TAG_RESOLUTION = "tag_resolution"
    SPAWNING = "spawning"


class CanonicalModel:
    """Mixin for canonical dict/json serialization."""

    def to_dict(self) -> dict[str, JSONValue]:
        serialized = _serialize_value(self, self.__class__.__name__)
        if not isinstance(serialized, dict):
            _fail(self.__class__.__name__, "serialized model must be an object")
        return serialized

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _as_str(
    value: object,
    path: str,
    *,
    min_len: int = 1,
    max_len: int = _MAX_TEXT,
) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    if len(value) < min_len:
        _fail(path, f"must be at least {min_len} character(s)")
    if len(value) > max_len:
        _fail(path, f"must be <= {max_len} characters")
    return value


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, path)


def _as_bool(value: object, path: str) -> bool:
    if isinstance(value, bool):
        return value
    _fail(path, f"expected boolean, got {type(value).__name__}")


def _as_int(
    value: object,
    path: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        _fail(path, f"must be >= {minimum}")
    if maximum is not None and value > maximum:
        _fail(path, f"must be <= {maximum}")
    return value


def _as_str_dict(value: object, path: str) -> dict[str, str]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    if len(value) > _MAX_ENV_ENTRIES:
        _fail(path, f"contains too many entries (>{_MAX_ENV_ENTRIES})")

    parsed: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not key:
            _fail(path, f"keys must be non-empty strings, got {key!r}")
        parsed[key] = _as_str(item, f"{path}.{key}", min_len=0)
    return parsed


def _as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        _fail(path, f"expected array, got {type(value).__name__}")
    return tuple(_as_str(item, f"{path}[{index}]") for index, item in enumerate(value))


def _serialize_value(value: object, path: str) -> JSONValue:
    if value is None or isinstance(value, bool):
        return cast("JSONValue", value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            _fail(path, "float values must be finite")
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        raw = value.value
        if not isinstance(raw, str):
            _fail(path, "enum value must be string")
        return raw
    if isinstance(value, datetime):
        return _datetime_to_iso8601z(value)
    if isinstance(value, (tuple, list)):
        return [_serialize_value(item, f"{path}[]") for item in value]
    if isinstance(value, CanonicalModel) and type(value).to_dict is not CanonicalModel.to_dict:
        return value.to_dict()
    if isinstance(value, Mapping):
        out: dict[str, JSONValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                _fail(path, "dict keys must be strings")
            out[key] = _serialize_value(item, f"{path}.{key}")
        return out
    if is_dataclass(value):
        out_obj: dict[str, JSONValue] = {}
        for dataclass_field in fields(value):
            out_obj[dataclass_field.name] = _serialize_value(
                getattr(value, dataclass_field.name),
                f"{path}.{dataclass_field.name}",
            )
        return out_obj

    _fail(path, f"cannot serialize value of type {type(value).__name__}")


def _datetime_to_iso8601z(value: datetime) -> str:
    if value.tzinfo is None or value.utcoffset() is None:
        _fail("datetime", "datetime must be timezone-aware UTC")
    normalized = value.astimezone(UTC)
    return normalized.isoformat(timespec="microseconds").replace("+00:00", "Z")


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _frozen_mapping(value: Mapping[str, object]) -> Mapping[str, object]:
    return MappingProxyType(dict(value))


# ---------------------------------------------------------------------------
# Placement specifications
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RelativeSpec(CanonicalModel):
    """Offset from the caller's current slot; negative values walk backwards."""

    offset: int
    kind: SpecKind = field(default=SpecKind.RELATIVE, init=False)

    def __post_init__(self) -> None:
        _as_int(self.offset, "RelativeSpec.offset")


@dataclass(frozen=True, slots=True)
class AbsoluteSpec(CanonicalModel):
    index: int
    kind: SpecKind = field(default=SpecKind.ABSOLUTE, init=False)

    def __post_init__(self) -> None:
        _as_int(
            self.index,
            "AbsoluteSpec.index",
            minimum=MIN_ABSOLUTE_SLOT,
            maximum=MAX_ABSOLUTE_SLOT,
        )


@dataclass(frozen=True, slots=True)
class NamedSpec(CanonicalModel):
    name: str
    kind: SpecKind = field(default=SpecKind.NAMED, init=False)

    def __post_init__(self) -> None:
        _as_str(self.name, "NamedSpec.name")
        if not TAG_NAME_PATTERN.fullmatch(self.name):
            _fail("NamedSpec.name", f"invalid tag name format: {self.name!r}")


Specification = RelativeSpec | AbsoluteSpec | NamedSpec


# ---------------------------------------------------------------------------
# Environment state
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Slot(CanonicalModel):
    """One workspace slot as reported by an environment adapter."""

    index: int
    name: str

    def __post_init__(self) -> None:
        _as_int(self.index, "Slot.index", minimum=1)
        _as_str(self.name, "Slot.name")


@dataclass(frozen=True, slots=True)
class EnvironmentSnapshot(CanonicalModel):
    current_index: int
    slots: tuple[Slot, ...] = ()

    def __post_init__(self) -> None:
        _as_int(self.current_index, "EnvironmentSnapshot.current_index", minimum=1)
        if not isinstance(self.slots, tuple):
            object.__setattr__(self, "slots", tuple(self.slots))
        for position, slot in enumerate(self.slots):
            if not isinstance(slot, Slot):
                _fail(
                    f"EnvironmentSnapshot.slots[{position}]",
                    f"expected Slot, got {type(slot).__name__}",
                )

    def slot_at(self, index: int) -> Slot | None:
        for slot in self.slots:
            if slot.index == index:
                return slot
        return None

    def slot_named(self, name: str) -> Slot | None:
        for slot in self.slots:
            if slot.name == name:
                return slot
        return None

    @property
    def current_slot(self) -> Slot | None:
        return self.slot_at(self.current_index)


# ---------------------------------------------------------------------------
# Resources and resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Resource(CanonicalModel):
    """One application the caller wants launched into a resolved slot.

    ``raw_spec`` is kept exactly as supplied; parsing happens in the planner so a
    malformed value is reported per resource instead of rejecting the request.
    """

    id: str
    command: str
    raw_spec: object = 0
    working_dir: str | None = None
    reuse: bool = False
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _as_str(self.id, "Resource.id")
        _as_str(self.command, "Resource.command", min_len=0)
        _as_optional_str(self.working_dir, "Resource.working_dir")
        _as_bool(self.reuse, "Resource.reuse")
        object.__setattr__(self, "env", _frozen_mapping(_as_str_dict(self.env, "Resource.env")))

    def properties(self) -> dict[str, object]:
        """Launch properties handed to an execution adapter."""

        return {
            "working_dir": self.working_dir,
            "reuse": self.reuse,
            "env": dict(self.env),
        }

    def to_dict(self) -> dict[str, JSONValue]:
        raw_spec = self.raw_spec
        return {
            "name": self.id,
            "command": self.command,
            "tag_spec": raw_spec if isinstance(raw_spec, (str, int)) else repr(raw_spec),
            "working_dir": self.working_dir,
            "reuse": self.reuse,
            "env": dict(self.env),
        }


@dataclass(frozen=True, slots=True)
class ResolvedSlot(CanonicalModel):
    index: int
    name: str
    created: bool = False

    def __post_init__(self) -> None:
        _as_int(self.index, "ResolvedSlot.index", minimum=1)
        _as_str(self.name, "ResolvedSlot.name")
        _as_bool(self.created, "ResolvedSlot.created")

    @classmethod
    def from_slot(cls, slot: Slot, *, created: bool = False) -> ResolvedSlot:
        return cls(index=slot.index, name=slot.name, created=created)


@dataclass(frozen=True, slots=True)
class TagAssignment(CanonicalModel):
    resource_id: str
    resolved_index: int
    resolved_name: str
    kind: SpecKind
    created: bool = False
    fallback: bool = False

    def __post_init__(self) -> None:
        _as_str(self.resource_id, "TagAssignment.resource_id")
        _as_int(self.resolved_index, "TagAssignment.resolved_index", minimum=1)
        _as_str(self.resolved_name, "TagAssignment.resolved_name")
        if not isinstance(self.kind, SpecKind):
            object.__setattr__(self, "kind", SpecKind(self.kind))

    @property
    def slot(self) -> ResolvedSlot:
        return ResolvedSlot(
            index=self.resolved_index, name=self.resolved_name, created=self.created
        )


@dataclass(frozen=True, slots=True)
class SlotCreation(CanonicalModel):
    name: str
    slot: Slot

    def __post_init__(self) -> None:
        _as_str(self.name, "SlotCreation.name")


@dataclass(frozen=True, slots=True)
class StructuredError(CanonicalModel):
    """Error or warning record shared by the planner and the orchestrator."""

    type: ErrorKind
    message: str
    phase: ErrorPhase
    resource_id: str | None = None
    context: Mapping[str, object] = field(default_factory=dict)
    suggestions: tuple[str, ...] = ()
    category: str | None = None
    classified_type: str | None = None
    timestamp: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.type, ErrorKind):
            object.__setattr__(self, "type", ErrorKind(self.type))
        if not isinstance(self.phase, ErrorPhase):
            object.__setattr__(self, "phase", ErrorPhase(self.phase))
        _as_str(self.message, "StructuredError.message")
        _as_optional_str(self.resource_id, "StructuredError.resource_id")
        if not isinstance(self.context, Mapping):
            _fail("StructuredError.context", f"expected object, got {type(self.context).__name__}")
        object.__setattr__(self, "context", _frozen_mapping(self.context))
        object.__setattr__(
            self, "suggestions", _as_str_tuple(self.suggestions, "StructuredError.suggestions")
        )

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "type": self.type.value,
            "message": self.message,
            "resource_id": self.resource_id,
            "context": _serialize_value(dict(self.context), "StructuredError.context"),
            "suggestions": list(self.suggestions),
            "metadata": {
                "phase": self.phase.value,
                "timestamp": _datetime_to_iso8601z(self.timestamp),
            },
        }
        if self.category is not None:
            payload["category"] = self.category
        if self.classified_type is not None:
            payload["classified_type"] = self.classified_type
        return payload


@dataclass(frozen=True, slots=True)
class TagOperationPlan(CanonicalModel):
    """Outcome of batch resolution for one invocation.

    ``warnings`` holds non-fatal records (fallbacks); ``errors`` holds records
    that left a resource without a usable slot.
    """

    assignments: tuple[TagAssignment, ...] = ()
    creations: tuple[SlotCreation, ...] = ()
    warnings: tuple[StructuredError, ...] = ()
    errors: tuple[StructuredError, ...] = ()

    @property
    def total_created(self) -> int:
        return len(self.creations)

    @property
    def resolved_slots(self) -> dict[str, ResolvedSlot]:
        return {item.resource_id: item.slot for item in self.assignments}

    def assignment_for(self, resource_id: str) -> TagAssignment | None:
        for item in self.assignments:
            if item.resource_id == resource_id:
                return item
        return None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "assignments": [item.to_dict() for item in self.assignments],
            "creations": [item.to_dict() for item in self.creations],
            "warnings": [item.to_dict() for item in self.warnings],
            "errors": [item.to_dict() for item in self.errors],
            "total_created": self.total_created,
        }


@dataclass(frozen=True, slots=True)
class SpawnResult(CanonicalModel):
    resource_id: str
    success: bool
    pid: int | None = None
    session_id: str | None = None
    error: StructuredError | None = None
    skipped: bool = False

    def __post_init__(self) -> None:
        _as_str(self.resource_id, "SpawnResult.resource_id")
        _as_bool(self.success, "SpawnResult.success")
        if self.success:
            _as_int(self.pid, "SpawnResult.pid", minimum=0)
            if self.error is not None:
                _fail("SpawnResult.error", "successful results must not carry an error")
        elif self.error is None:
            _fail("SpawnResult.error", "failed results require an error")


# ---------------------------------------------------------------------------
# Combined response
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SpawnedResource(CanonicalModel):
    name: str
    pid: int
    session_id: str | None
    command: str
    tag_spec: object

    def to_dict(self) -> dict[str, JSONValue]:
        tag_spec = self.tag_spec
        return {
            "name": self.name,
            "pid": self.pid,
            "session_id": self.session_id,
            "command": self.command,
            "tag_spec": tag_spec if isinstance(tag_spec, (str, int)) else repr(tag_spec),
        }


@dataclass(frozen=True, slots=True)
class PhaseError(CanonicalModel):
    phase: ErrorPhase
    resource_id: str | None
    error: StructuredError


@dataclass(frozen=True, slots=True)
class SuccessResponse(CanonicalModel):
    project_name: str
    spawned_resources: tuple[SpawnedResource, ...]
    tag_operations: TagOperationPlan
    tag_errors: tuple[PhaseError, ...] = ()
    spawn_errors: tuple[PhaseError, ...] = ()

    @property
    def total_spawned(self) -> int:
        return len(self.spawned_resources)

    @property
    def has_warnings(self) -> bool:
        return bool(self.tag_errors or self.spawn_errors)

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "project_name": self.project_name,
            "total_spawned": self.total_spawned,
            "spawned_resources": [item.to_dict() for item in self.spawned_resources],
            "tag_operations": self.tag_operations.to_dict(),
        }
        if self.has_warnings:
            payload["warnings"] = {
                "tag_errors": [item.to_dict() for item in self.tag_errors],
                "spawn_errors": [item.to_dict() for item in self.spawn_errors],
            }
        return payload


@dataclass(frozen=True, slots=True)
class FailureResponse(CanonicalModel):
    project_name: str
    errors: tuple[PhaseError, ...]
    total_attempted: int
    success_count: int = 0
    error_type: str = COMPLETE_FAILURE

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "project_name": self.project_name,
            "error_type": self.error_type,
            "errors": [item.to_dict() for item in self.errors],
            "metadata": {
                "total_attempted": self.total_attempted,
                "success_count": self.success_count,
                "error_count": self.error_count,
            },
        }


CombinedResponse = SuccessResponse | FailureResponse


__all__ = [
    "TAG_NAME_PATTERN",
    "AbsoluteSpec",
    "CanonicalModel",
    "CombinedResponse",
    "EnvironmentSnapshot",
    "ErrorKind",
    "ErrorPhase",
    "FailureResponse",
    "JSONScalar",
    "JSONValue",
    "NamedSpec",
    "PhaseError",
    "RelativeSpec",
    "ResolvedSlot",
    "Resource",
    "Slot",
    "SlotCreation",
    "SpawnResult",
    "SpawnedResource",
    "SpecKind",
    "Specification",
    "StructuredError",
    "SuccessResponse",
    "TagAssignment",
    "TagOperationPlan",
]
