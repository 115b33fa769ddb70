"""Spawn-plane public API: launch commands, orchestrate launches, wait for clients."""

from tagspawn.spawn_plane.command import (
    SpawnProperties,
    build_command_with_env,
    build_launch_command,
    executable_name,
)
from tagspawn.spawn_plane.orchestrator import spawn_all
from tagspawn.spawn_plane.waiter import (
    ClientAppearanceWaiter,
    ClientInfo,
    ClientLocator,
    WaitResult,
)

__all__ = [
    "ClientAppearanceWaiter",
    "ClientInfo",
    "ClientLocator",
    "SpawnProperties",
    "WaitResult",
    "build_command_with_env",
    "build_launch_command",
    "executable_name",
    "spawn_all",
]
