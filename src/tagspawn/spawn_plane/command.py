"""Launch command and property construction for execution adapters."""

from __future__ import annotations

import os
import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

from tagspawn.domain.models import ResolvedSlot

_ENV_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True, slots=True)
class SpawnProperties:
    """Normalized launch properties for one resource."""

    working_dir: str | None = None
    reuse: bool = False
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    @classmethod
    def from_mapping(cls, properties: Mapping[str, object] | None) -> SpawnProperties:
        if not properties:
            return cls()
        working_dir = properties.get("working_dir")
        reuse = properties.get("reuse", False)
        env = properties.get("env") or {}
        if working_dir is not None and not isinstance(working_dir, str):
            raise ValueError(f"working_dir must be a string, got {type(working_dir).__name__}")
        if not isinstance(reuse, bool):
            raise ValueError(f"reuse must be a boolean, got {type(reuse).__name__}")
        if not isinstance(env, Mapping):
            raise ValueError(f"env must be a mapping, got {type(env).__name__}")
        return cls(
            working_dir=working_dir or None,
            reuse=reuse,
            env={str(key): str(value) for key, value in env.items()},
        )

    def as_dict(self) -> dict[str, object]:
        return {"working_dir": self.working_dir, "reuse": self.reuse, "env": dict(self.env)}


def build_command_with_env(command: str, env: Mapping[str, str] | None) -> str:
    """Prefix ``command`` with ``env K=V ...`` when variables are supplied.

    Values are shell-quoted; names must be valid environment variable names.
    """

    if not env:
        return command
    return f"env {_format_assignments(env)} {command}"


def build_launch_command(
    command: str,
    *,
    working_dir: str | None = None,
    env: Mapping[str, str] | None = None,
    clear_env: bool = False,
) -> str:
    """Full shell command line for a launch, including directory and env prefix.

    ``clear_env`` starts the program with only the supplied variables (``env -i``).
    """

    if not command.strip():
        raise ValueError("no command to execute")
    if working_dir is None and not env and not clear_env:
        return command

    parts = ["env"]
    if clear_env:
        parts.append("-i")
    if working_dir is not None:
        parts.extend(["-C", shlex.quote(os.path.expanduser(working_dir))])
    if env:
        parts.append(_format_assignments(env))
    parts.append(command)
    return " ".join(parts)


def executable_name(command: str) -> str:
    """Basename of the program a command line would run, used for reuse matching."""

    try:
        tokens = shlex.split(command)
    except ValueError:
        tokens = command.split()
    for token in tokens:
        if "=" in token and _ENV_NAME_PATTERN.fullmatch(token.split("=", 1)[0]):
            continue
        if token == "env":
            continue
        return os.path.basename(token)
    return ""


def describe_slot(slot: ResolvedSlot) -> str:
    suffix = " (created)" if slot.created else ""
    return f"{slot.name}[{slot.index}]{suffix}"


def _format_assignments(env: Mapping[str, str]) -> str:
    assignments: list[str] = []
    for key, value in env.items():
        if not _ENV_NAME_PATTERN.fullmatch(key):
            raise ValueError(f"invalid environment variable name: {key!r}")
        assignments.append(f"{key}={shlex.quote(str(value))}")
    return " ".join(assignments)


__all__ = [
    "SpawnProperties",
    "build_command_with_env",
    "build_launch_command",
    "describe_slot",
    "executable_name",
]
