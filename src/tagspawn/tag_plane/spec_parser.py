"""
tagspawn - placement specification parser.

File: src/tagspawn/tag_plane/spec_parser.py

Purpose
- Turn a raw placement value (as found in a start request) into a typed
  specification: ``RelativeSpec``, ``AbsoluteSpec`` or ``NamedSpec``.

Rules, applied in order
1. ``None`` is rejected.
2. ``int`` (never ``bool``) is a relative offset; negative offsets walk backwards.
3. Any other non-string is rejected.
4. The empty string is rejected.
5. ASCII all-digit strings are absolute indices and must fall in 1..9.
6. Signed ASCII digit strings (``"+2"``, ``"-1"``) are relative offsets of at
   most ``MAX_OFFSET_DIGITS`` digits.
7. Identifier-shaped strings are named slots.
8. Everything else is rejected.

Parsing has no side effects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from tagspawn.constants import MAX_ABSOLUTE_SLOT, MIN_ABSOLUTE_SLOT
from tagspawn.domain.errors import TagSpecError
from tagspawn.domain.models import (
    TAG_NAME_PATTERN,
    AbsoluteSpec,
    NamedSpec,
    RelativeSpec,
    Specification,
)

_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[0-9]+$")
_SIGNED_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[+-][0-9]+$")

NIL_SPEC_MESSAGE: Final[str] = "tag specification cannot be nil"
EMPTY_SPEC_MESSAGE: Final[str] = "tag specification cannot be empty"
RANGE_MESSAGE: Final[str] = (
    f"absolute tag must be between {MIN_ABSOLUTE_SLOT} and {MAX_ABSOLUTE_SLOT}"
)
MAX_OFFSET_DIGITS: Final[int] = 18
_MAX_ABSOLUTE_DIGITS: Final[int] = len(str(MAX_ABSOLUTE_SLOT))


@dataclass(frozen=True, slots=True)
class ParseOutcome:
    """Non-raising parse result: exactly one of ``spec`` or ``error`` is set."""

    spec: Specification | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.spec is not None


def parse(raw: object) -> Specification:
    """Parse ``raw`` into a specification or raise :class:`TagSpecError`."""

    if raw is None:
        raise TagSpecError(NIL_SPEC_MESSAGE, raw=raw)

    if isinstance(raw, int) and not isinstance(raw, bool):
        return RelativeSpec(offset=raw)

    if not isinstance(raw, str):
        raise TagSpecError(
            f"tag specification must be a number or string, got {_type_label(raw)}",
            raw=raw,
        )

    if raw == "":
        raise TagSpecError(EMPTY_SPEC_MESSAGE, raw=raw)

    if _ABSOLUTE_PATTERN.fullmatch(raw):
        significant = raw.lstrip("0")
        if len(significant) > _MAX_ABSOLUTE_DIGITS:
            raise TagSpecError(f"{RANGE_MESSAGE}, got {_clip(raw)}", raw=raw)
        value = int(significant or "0")
        if not MIN_ABSOLUTE_SLOT <= value <= MAX_ABSOLUTE_SLOT:
            raise TagSpecError(f"{RANGE_MESSAGE}, got {value}", raw=raw)
        return AbsoluteSpec(index=value)

    if _SIGNED_OFFSET_PATTERN.fullmatch(raw):
        if len(raw) - 1 > MAX_OFFSET_DIGITS:
            raise TagSpecError(
                f"relative offset must have at most {MAX_OFFSET_DIGITS} digits, "
                f"got {_clip(raw)}",
                raw=raw,
            )
        return RelativeSpec(offset=int(raw))

    if TAG_NAME_PATTERN.fullmatch(raw):
        return NamedSpec(name=raw)

    raise TagSpecError(
        f"invalid tag name format: {raw!r} must start with a letter or underscore and "
        "contain only letters, digits, underscore, or dash",
        raw=raw,
    )


def try_parse(raw: object) -> ParseOutcome:
    """Parse without raising; the error message is captured in the outcome."""

    try:
        return ParseOutcome(spec=parse(raw))
    except TagSpecError as exc:
        return ParseOutcome(error=str(exc))


def validate(raw: object) -> str | None:
    """Return ``None`` when ``raw`` parses, else the error message."""

    return try_parse(raw).error


def describe(spec: Specification) -> str:
    """Human-readable description of a parsed specification."""

    if isinstance(spec, RelativeSpec):
        if spec.offset == 0:
            return "current slot (relative offset 0)"
        return f"relative offset {spec.offset:+d}"
    if isinstance(spec, AbsoluteSpec):
        return f"absolute slot {spec.index}"
    return f"named slot '{spec.name}'"


def _clip(raw: str, limit: int = 24) -> str:
    return raw if len(raw) <= limit else f"{raw[:limit]}... ({len(raw)} chars)"


def _type_label(value: object) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float):
        return "float"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


__all__ = [
    "EMPTY_SPEC_MESSAGE",
    "MAX_OFFSET_DIGITS",
    "NIL_SPEC_MESSAGE",
    "RANGE_MESSAGE",
    "ParseOutcome",
    "describe",
    "parse",
    "try_parse",
    "validate",
]
