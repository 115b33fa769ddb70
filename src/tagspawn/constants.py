"""Stable constants shared across tagspawn planes."""

from __future__ import annotations

from typing import Final

# Absolute slot specifications are restricted to this inclusive range.
MIN_ABSOLUTE_SLOT: Final[int] = 1
MAX_ABSOLUTE_SLOT: Final[int] = 9

# Slot layout simulated by the dry-run environment adapter.
DRY_RUN_SLOT_COUNT: Final[int] = 9
DRY_RUN_CURRENT_INDEX: Final[int] = 1
DRY_RUN_PID: Final[int] = 9999

# Tag spec applied to resources that omit one (current slot).
DEFAULT_TAG_SPEC: Final[int] = 0

# Schema version for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Response error_type for the all-failed outcome.
COMPLETE_FAILURE: Final[str] = "COMPLETE_FAILURE"

__all__ = [
    "COMPLETE_FAILURE",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_TAG_SPEC",
    "DRY_RUN_CURRENT_INDEX",
    "DRY_RUN_PID",
    "DRY_RUN_SLOT_COUNT",
    "MAX_ABSOLUTE_SLOT",
    "MIN_ABSOLUTE_SLOT",
]
