"""
tagspawn - environment adapters.

File: src/tagspawn/adapters/environment.py

Purpose
- Hide window-manager slot state behind one interface so the planner can run
  against the live desktop, a side-effect-free simulation, or test fixtures.

Implementations
- ``LiveEnvironmentAdapter``: AwesomeWM via ``awesome-client``.
- ``DryRunEnvironmentAdapter``: nine numeric slots, simulated creation, operation log.
- ``MockEnvironmentAdapter``: deterministic fixture state with call recording.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from tagspawn.adapters.wm_client import WindowManagerClient, lua_string
from tagspawn.constants import DRY_RUN_CURRENT_INDEX, DRY_RUN_SLOT_COUNT
from tagspawn.domain.errors import SlotCreationError, WindowManagerError
from tagspawn.domain.models import EnvironmentSnapshot, Slot

try:
    from datetime import UTC
except ImportError:
    UTC = timezone.utc  # noqa: UP017

logger = logging.getLogger(__name__)


class EnvironmentAdapter(Protocol):
    """Slot state contract consumed by the batch planner."""

    def get_current_index(self) -> int: ...

    def list_slots(self) -> list[Slot]: ...

    def find_slot_by_name(self, name: str) -> Slot | None: ...

    def create_named_slot(self, name: str) -> Slot: ...


def read_snapshot(adapter: EnvironmentAdapter) -> EnvironmentSnapshot:
    """Capture current index and slot list in one snapshot."""

    return EnvironmentSnapshot(
        current_index=adapter.get_current_index(),
        slots=tuple(adapter.list_slots()),
    )


# ---------------------------------------------------------------------------
# Live
# ---------------------------------------------------------------------------

_LUA_CURRENT_INDEX = """
local s = awful.screen.focused()
if not s then return -1 end
local t = s.selected_tag
if t and t.index then return t.index end
return 1
"""

_LUA_LIST_SLOTS = """
local s = awful.screen.focused()
if not s then return "" end
local out = {}
for _, t in ipairs(s.tags) do
  table.insert(out, t.index .. "\\t" .. t.name)
end
return table.concat(out, "\\n")
"""

_LUA_CREATE_SLOT = """
local s = awful.screen.focused()
if not s then return "ERROR: no focused screen" end
local t = awful.tag.add({name}, {{ screen = s, layout = awful.layout.suit.tile }})
if not t then return "ERROR: awful.tag.add returned nil" end
return t.index .. "\\t" .. t.name
"""


class LiveEnvironmentAdapter:
    """Read and create AwesomeWM tags on the focused screen."""

    def __init__(self, client: WindowManagerClient) -> None:
        self._client = client

    def get_current_index(self) -> int:
        value = self._client.evaluate_int(_LUA_CURRENT_INDEX)
        if value < 1:
            raise WindowManagerError("no focused screen available")
        return value

    def list_slots(self) -> list[Slot]:
        text = self._client.evaluate_str(_LUA_LIST_SLOTS)
        return _parse_slot_lines(text)

    def find_slot_by_name(self, name: str) -> Slot | None:
        for slot in self.list_slots():
            if slot.name == name:
                return slot
        return None

    def create_named_slot(self, name: str) -> Slot:
        try:
            text = self._client.evaluate_str(_LUA_CREATE_SLOT.format(name=lua_string(name)))
        except WindowManagerError as exc:
            raise SlotCreationError(name, str(exc)) from exc
        if text.startswith("ERROR:"):
            raise SlotCreationError(name, text.removeprefix("ERROR:").strip())
        slots = _parse_slot_lines(text)
        if len(slots) != 1:
            raise SlotCreationError(name, f"unexpected window manager reply {text!r}")
        logger.info("created slot %r at index %d", name, slots[0].index)
        return slots[0]


def _parse_slot_lines(text: str) -> list[Slot]:
    slots: list[Slot] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        raw_index, _, name = line.partition("\t")
        try:
            index = int(raw_index)
        except ValueError as exc:
            raise WindowManagerError(f"malformed slot line {line!r}") from exc
        slots.append(Slot(index=index, name=name or str(index)))
    return slots


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """One simulated operation captured by dry-run adapters."""

    operation: str
    details: dict[str, object] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class DryRunEnvironmentAdapter:
    """Simulate slot state without side effects and record every operation."""

    def __init__(
        self,
        *,
        slot_count: int = DRY_RUN_SLOT_COUNT,
        current_index: int = DRY_RUN_CURRENT_INDEX,
    ) -> None:
        if slot_count < 1:
            raise ValueError("slot_count must be >= 1")
        if not 1 <= current_index <= slot_count:
            raise ValueError("current_index must reference an existing slot")
        self._slot_count = slot_count
        self._initial_index = current_index
        self._current_index = current_index
        self._slots: list[Slot] = []
        self._log: list[OperationRecord] = []
        self.clear()

    @property
    def execution_log(self) -> tuple[OperationRecord, ...]:
        return tuple(self._log)

    def clear(self) -> None:
        """Reset simulated slots and the operation log."""

        self._slots = [Slot(index=i, name=str(i)) for i in range(1, self._slot_count + 1)]
        self._current_index = self._initial_index
        self._log = []

    def get_current_index(self) -> int:
        return self._current_index

    def list_slots(self) -> list[Slot]:
        return list(self._slots)

    def find_slot_by_name(self, name: str) -> Slot | None:
        self._record("find_slot", slot_name=name)
        return self._find(name)

    def create_named_slot(self, name: str) -> Slot:
        if not name:
            raise SlotCreationError(name, "slot name must not be empty")
        existing = self._find(name)
        if existing is not None:
            self._record(
                "create_slot", slot_name=name, result="existing_found", slot_index=existing.index
            )
            return existing
        slot = Slot(index=max(item.index for item in self._slots) + 1, name=name)
        self._slots.append(slot)
        self._record("create_slot", slot_name=name, result="created", slot_index=slot.index)
        return slot

    def _find(self, name: str) -> Slot | None:
        for slot in self._slots:
            if slot.name == name:
                return slot
        return None

    def _record(self, operation: str, **details: object) -> None:
        self._log.append(OperationRecord(operation=operation, details=dict(details)))


# ---------------------------------------------------------------------------
# Mock
# ---------------------------------------------------------------------------


class MockEnvironmentAdapter:
    """Deterministic environment for tests.

    Slots default to ``1..slot_count`` named after their index. Named slots may
    be added up front; names listed in ``fail_creation_for`` raise
    :class:`SlotCreationError` when created.
    """

    def __init__(
        self,
        *,
        current_index: int = 1,
        slot_count: int = 9,
        named_slots: Sequence[str] = (),
        slots: Iterable[Slot] | None = None,
        fail_creation_for: Iterable[str] = (),
    ) -> None:
        if slots is not None:
            self.slots = list(slots)
        else:
            self.slots = [Slot(index=i, name=str(i)) for i in range(1, slot_count + 1)]
            for name in named_slots:
                self.slots.append(Slot(index=len(self.slots) + 1, name=name))
        self.current_index = current_index
        self.fail_creation_for = set(fail_creation_for)
        self.create_calls: list[str] = []
        self.find_calls: list[str] = []

    def get_current_index(self) -> int:
        return self.current_index

    def list_slots(self) -> list[Slot]:
        return list(self.slots)

    def find_slot_by_name(self, name: str) -> Slot | None:
        self.find_calls.append(name)
        for slot in self.slots:
            if slot.name == name:
                return slot
        return None

    def create_named_slot(self, name: str) -> Slot:
        self.create_calls.append(name)
        if name in self.fail_creation_for:
            raise SlotCreationError(name, "creation refused by mock")
        next_index = max((slot.index for slot in self.slots), default=0) + 1
        slot = Slot(index=next_index, name=name)
        self.slots.append(slot)
        return slot


__all__ = [
    "DryRunEnvironmentAdapter",
    "EnvironmentAdapter",
    "LiveEnvironmentAdapter",
    "MockEnvironmentAdapter",
    "OperationRecord",
    "read_snapshot",
]
