"""
tagspawn - execution adapters.

File: src/tagspawn/adapters/execution.py

Purpose
- Launch one command into one resolved slot and report ``(pid, session_id)``
  or an error string. The orchestrator never talks to the window manager
  directly; it goes through one of these adapters.

Implementations
- ``LiveExecutionAdapter``: ``awful.spawn`` inside AwesomeWM via ``awesome-client``.
- ``DryRunExecutionAdapter``: records the launch, returns a fixed pid.
- ``MockExecutionAdapter``: scripted per-command outcomes for tests.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from tagspawn.adapters.environment import OperationRecord
from tagspawn.adapters.wm_client import WindowManagerClient, lua_string
from tagspawn.constants import DRY_RUN_PID
from tagspawn.domain.errors import WindowManagerError
from tagspawn.domain.ids import DRY_RUN_SESSION_PREFIX, MOCK_SESSION_PREFIX, generate_prefixed_id
from tagspawn.domain.models import ResolvedSlot
from tagspawn.spawn_plane.command import SpawnProperties, build_launch_command, executable_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SpawnOutcome:
    """Adapter-level launch result: either a pid or an error message."""

    pid: int | None = None
    session_id: str | None = None
    error: str | None = None
    reused: bool = False

    def __post_init__(self) -> None:
        if (self.pid is None) == (self.error is None):
            raise ValueError("SpawnOutcome requires exactly one of pid or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, pid: int, session_id: str | None = None, *, reused: bool = False) -> SpawnOutcome:
        return cls(pid=pid, session_id=session_id, reused=reused)

    @classmethod
    def failure(cls, error: str) -> SpawnOutcome:
        return cls(error=error or "unknown spawn error")


class ExecutionAdapter(Protocol):
    """Launch contract consumed by the spawn orchestrator."""

    def spawn(
        self,
        command: str,
        slot: ResolvedSlot,
        properties: Mapping[str, object],
    ) -> SpawnOutcome: ...


# ---------------------------------------------------------------------------
# Live
# ---------------------------------------------------------------------------

_LUA_SPAWN = """
local s = awful.screen.focused()
if not s then return "ERROR\\tno focused screen" end
local target = nil
for _, t in ipairs(s.tags) do
  if t.index == {index} then target = t end
end
if not target then return "ERROR\\tslot {index} does not exist" end
if {reuse} then
  local wanted = string.lower({klass})
  for _, c in ipairs(client.get()) do
    if c.class and string.lower(c.class) == wanted then
      c:move_to_tag(target)
      return "REUSED\\t" .. tostring(c.pid or 0)
    end
  end
end
local pid, snid = awful.spawn({command}, {{ tag = target }})
if type(pid) == "string" then return "ERROR\\t" .. pid end
return "SPAWNED\\t" .. tostring(pid) .. "\\t" .. tostring(snid or "")
"""


class LiveExecutionAdapter:
    """Launch through ``awful.spawn`` on the focused screen."""

    def __init__(self, client: WindowManagerClient, *, inherit_env: bool = True) -> None:
        self._client = client
        self._inherit_env = inherit_env

    def spawn(
        self,
        command: str,
        slot: ResolvedSlot,
        properties: Mapping[str, object],
    ) -> SpawnOutcome:
        props = SpawnProperties.from_mapping(properties)
        try:
            line = build_launch_command(
                command,
                working_dir=props.working_dir,
                env=props.env,
                clear_env=not self._inherit_env,
            )
        except ValueError as exc:
            return SpawnOutcome.failure(str(exc))

        script = _LUA_SPAWN.format(
            index=slot.index,
            reuse="true" if props.reuse else "false",
            klass=lua_string(executable_name(command)),
            command=lua_string(line),
        )
        try:
            reply = self._client.evaluate_str(script)
        except WindowManagerError as exc:
            return SpawnOutcome.failure(str(exc))
        return _parse_spawn_reply(reply)


def _parse_spawn_reply(reply: str) -> SpawnOutcome:
    status, _, rest = reply.partition("\t")
    if status == "ERROR":
        return SpawnOutcome.failure(rest.strip())
    if status in {"SPAWNED", "REUSED"}:
        raw_pid, _, snid = rest.partition("\t")
        try:
            pid = int(raw_pid)
        except ValueError:
            return SpawnOutcome.failure(f"window manager returned invalid pid {raw_pid!r}")
        return SpawnOutcome.success(pid, snid or None, reused=status == "REUSED")
    return SpawnOutcome.failure(f"unexpected window manager reply {reply!r}")


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


class DryRunExecutionAdapter:
    """Record launch intent without executing anything."""

    def __init__(self, *, pid: int = DRY_RUN_PID) -> None:
        self._pid = pid
        self._log: list[OperationRecord] = []

    @property
    def execution_log(self) -> tuple[OperationRecord, ...]:
        return tuple(self._log)

    def clear(self) -> None:
        self._log = []

    def spawn(
        self,
        command: str,
        slot: ResolvedSlot,
        properties: Mapping[str, object],
    ) -> SpawnOutcome:
        props = SpawnProperties.from_mapping(properties)
        try:
            line = build_launch_command(command, working_dir=props.working_dir, env=props.env)
        except ValueError as exc:
            return SpawnOutcome.failure(str(exc))
        self._log.append(
            OperationRecord(
                operation="spawn",
                details={
                    "command": line,
                    "slot_index": slot.index,
                    "slot_name": slot.name,
                    "reuse": props.reuse,
                    "result": "simulated",
                },
            )
        )
        logger.debug("dry-run spawn of %r on slot %d", line, slot.index)
        return SpawnOutcome.success(self._pid, generate_prefixed_id(DRY_RUN_SESSION_PREFIX))


# ---------------------------------------------------------------------------
# Mock
# ---------------------------------------------------------------------------

ScriptedOutcome = SpawnOutcome | str | int | Exception


@dataclass(frozen=True, slots=True)
class SpawnCall:
    command: str
    slot: ResolvedSlot
    properties: dict[str, object] = field(default_factory=dict)


class MockExecutionAdapter:
    """Scripted execution adapter.

    ``outcomes`` maps a command (or its executable name) to a ``SpawnOutcome``,
    an error string, a pid, or an exception instance to raise. Unscripted
    commands succeed with increasing pids starting at ``first_pid``.
    """

    def __init__(
        self,
        outcomes: Mapping[str, ScriptedOutcome] | None = None,
        *,
        first_pid: int = 1000,
    ) -> None:
        self.outcomes = dict(outcomes or {})
        self.calls: list[SpawnCall] = []
        self._next_pid = first_pid

    def spawn(
        self,
        command: str,
        slot: ResolvedSlot,
        properties: Mapping[str, object],
    ) -> SpawnOutcome:
        self.calls.append(SpawnCall(command=command, slot=slot, properties=dict(properties)))
        scripted = self.outcomes.get(command)
        if scripted is None:
            scripted = self.outcomes.get(executable_name(command))
        if scripted is None:
            return self._success()
        if isinstance(scripted, Exception):
            raise scripted
        if isinstance(scripted, SpawnOutcome):
            return scripted
        if isinstance(scripted, str):
            return SpawnOutcome.failure(scripted)
        return SpawnOutcome.success(scripted, generate_prefixed_id(MOCK_SESSION_PREFIX))

    @property
    def spawned_commands(self) -> list[str]:
        return [call.command for call in self.calls]

    def _success(self) -> SpawnOutcome:
        pid = self._next_pid
        self._next_pid += 1
        return SpawnOutcome.success(pid, generate_prefixed_id(MOCK_SESSION_PREFIX))


__all__ = [
    "DryRunExecutionAdapter",
    "ExecutionAdapter",
    "LiveExecutionAdapter",
    "MockExecutionAdapter",
    "SpawnCall",
    "SpawnOutcome",
]
