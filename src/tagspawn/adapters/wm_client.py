"""
tagspawn - window-manager command bridge.

File: src/tagspawn/adapters/wm_client.py

Purpose
- Evaluate Lua snippets inside a running AwesomeWM instance through the
  ``awesome-client`` executable and decode its D-Bus style replies
  (``   string "text"``, ``   double 3``, ``   integer 3``, ``   boolean true``).

The command runner is injectable so live adapters can be tested offline.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final, Protocol

from tagspawn.domain.errors import WindowManagerError

logger = logging.getLogger(__name__)

DEFAULT_AWESOME_CLIENT: Final[str] = "awesome-client"
DEFAULT_COMMAND_TIMEOUT_SECONDS: Final[float] = 5.0

_PRELUDE: Final[str] = 'local awful = require("awful")\n'
_REPLY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^\s*(?P<kind>string|double|integer|int32|int64|uint32|boolean)\s+(?P<value>.*)$",
    re.DOTALL,
)


@dataclass(frozen=True, slots=True)
class CommandExecutionResult:
    """Normalized subprocess result returned by command runners."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


class CommandRunner(Protocol):
    """Injectable command runner used for deterministic/offline testing."""

    def run(
        self,
        command: Sequence[str],
        *,
        input_text: str,
        timeout_seconds: float,
    ) -> CommandExecutionResult: ...


class SubprocessCommandRunner:
    """Default command runner backed by ``subprocess.run``."""

    def run(
        self,
        command: Sequence[str],
        *,
        input_text: str,
        timeout_seconds: float,
    ) -> CommandExecutionResult:
        try:
            completed = subprocess.run(
                list(command),
                input=input_text,
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise WindowManagerError(
                f"command timed out after {timeout_seconds} seconds: {' '.join(command)}"
            ) from exc
        except OSError as exc:
            raise WindowManagerError(f"could not run {command[0]!r}: {exc}") from exc

        return CommandExecutionResult(
            command=tuple(command),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


class WindowManagerClient:
    """Evaluate Lua in AwesomeWM and decode the single returned value."""

    def __init__(
        self,
        *,
        executable: str = DEFAULT_AWESOME_CLIENT,
        timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        runner: CommandRunner | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._executable = executable
        self._timeout_seconds = timeout_seconds
        self._runner = runner or SubprocessCommandRunner()

    def evaluate(self, lua: str) -> str | float | bool | None:
        script = _PRELUDE + lua.strip() + "\n"
        result = self._runner.run(
            (self._executable,),
            input_text=script,
            timeout_seconds=self._timeout_seconds,
        )
        if result.returncode != 0:
            detail = result.stderr.strip() or result.stdout.strip() or "no output"
            raise WindowManagerError(
                f"{self._executable} exited with status {result.returncode}: {detail}"
            )
        if "error" in result.stderr.lower():
            raise WindowManagerError(f"{self._executable} reported: {result.stderr.strip()}")
        return parse_reply(result.stdout)

    def evaluate_str(self, lua: str) -> str:
        value = self.evaluate(lua)
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else str(value)
        return value

    def evaluate_int(self, lua: str) -> int:
        value = self.evaluate(lua)
        if isinstance(value, bool) or value is None:
            raise WindowManagerError(f"expected a number from window manager, got {value!r}")
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError as exc:
                raise WindowManagerError(
                    f"expected a number from window manager, got {value!r}"
                ) from exc
        if not value.is_integer():
            raise WindowManagerError(f"expected an integer from window manager, got {value}")
        return int(value)


def parse_reply(stdout: str) -> str | float | bool | None:
    """Decode the first value printed by ``awesome-client``.

    Empty output means the snippet returned nothing.
    """

    text = stdout.strip("\n")
    if not text.strip():
        return None
    match = _REPLY_PATTERN.match(text)
    if match is None:
        raise WindowManagerError(f"unrecognised window manager reply: {text!r}")
    kind = match.group("kind")
    raw = match.group("value").rstrip()
    if kind == "string":
        if len(raw) < 2 or not (raw.startswith('"') and raw.endswith('"')):
            raise WindowManagerError(f"malformed string reply: {raw!r}")
        return raw[1:-1]
    if kind == "boolean":
        return raw == "true"
    try:
        return float(raw)
    except ValueError as exc:
        raise WindowManagerError(f"malformed numeric reply: {raw!r}") from exc


def lua_string(value: str) -> str:
    """Quote ``value`` as a Lua string literal."""

    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\0", "\\0")
    )
    return f'"{escaped}"'


__all__ = [
    "CommandExecutionResult",
    "CommandRunner",
    "SubprocessCommandRunner",
    "WindowManagerClient",
    "lua_string",
    "parse_reply",
]
