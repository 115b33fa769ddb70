"""
tagspawn - adapters

File: src/tagspawn/adapters/__init__.py

Purpose
- Boundary between the planning/spawning core and the window manager.
- Each contract has a live, dry-run, and mock implementation so the same core
  runs against a desktop, a simulation, or tests.
"""

from tagspawn.adapters.clients import DryRunClientLocator, LiveClientLocator, MockClientLocator
from tagspawn.adapters.environment import (
    DryRunEnvironmentAdapter,
    EnvironmentAdapter,
    LiveEnvironmentAdapter,
    MockEnvironmentAdapter,
    OperationRecord,
    read_snapshot,
)
from tagspawn.adapters.execution import (
    DryRunExecutionAdapter,
    ExecutionAdapter,
    LiveExecutionAdapter,
    MockExecutionAdapter,
    SpawnCall,
    SpawnOutcome,
)
from tagspawn.adapters.wm_client import (
    CommandExecutionResult,
    CommandRunner,
    SubprocessCommandRunner,
    WindowManagerClient,
)

__all__ = [
    "CommandExecutionResult",
    "CommandRunner",
    "DryRunClientLocator",
    "DryRunEnvironmentAdapter",
    "DryRunExecutionAdapter",
    "EnvironmentAdapter",
    "ExecutionAdapter",
    "LiveClientLocator",
    "LiveEnvironmentAdapter",
    "LiveExecutionAdapter",
    "MockClientLocator",
    "MockEnvironmentAdapter",
    "MockExecutionAdapter",
    "OperationRecord",
    "SpawnCall",
    "SpawnOutcome",
    "SubprocessCommandRunner",
    "WindowManagerClient",
    "read_snapshot",
]
