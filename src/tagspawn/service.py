"""
tagspawn - service facade.

File: src/tagspawn/service.py

Purpose
- Run one start invocation end to end: intake -> plan -> spawn -> response.
- Own adapter wiring so callers pick ``live``, ``dry_run`` or ``mock`` by name.

Each ``start`` call is independent; the only state that survives between calls
is whatever the environment adapter itself holds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from tagspawn.adapters.clients import DryRunClientLocator, LiveClientLocator, MockClientLocator
from tagspawn.adapters.environment import (
    DryRunEnvironmentAdapter,
    EnvironmentAdapter,
    LiveEnvironmentAdapter,
    MockEnvironmentAdapter,
)
from tagspawn.adapters.execution import (
    DryRunExecutionAdapter,
    ExecutionAdapter,
    LiveExecutionAdapter,
    MockExecutionAdapter,
)
from tagspawn.adapters.wm_client import CommandRunner, WindowManagerClient
from tagspawn.domain.ids import generate_invocation_id
from tagspawn.domain.models import CombinedResponse, SpawnResult, SuccessResponse
from tagspawn.intake import StartRequest, parse_request
from tagspawn.observability.logging import correlation_scope
from tagspawn.reporting import response as response_builder
from tagspawn.reporting.classifier import SpawnSummary, summarize_spawn_results
from tagspawn.spawn_plane.orchestrator import spawn_all
from tagspawn.spawn_plane.waiter import ClientAppearanceWaiter, ClientLocator, WaitResult
from tagspawn.tag_plane.planner import BatchPlanner

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StartOutcome:
    """Everything one invocation produced; ``response`` is what callers publish."""

    invocation_id: str
    success: bool
    response: CombinedResponse
    spawn_results: tuple[SpawnResult, ...]
    summary: SpawnSummary


class TagSpawnService:
    def __init__(
        self,
        environment: EnvironmentAdapter,
        execution: ExecutionAdapter,
        *,
        client_locator: ClientLocator | None = None,
        default_reuse: bool = False,
        wait_timeout_seconds: float = 5.0,
        wait_poll_interval_seconds: float = 0.5,
        invocation_id_factory: Callable[[], str] = generate_invocation_id,
    ) -> None:
        self.environment = environment
        self.execution = execution
        self.client_locator = client_locator
        self.default_reuse = default_reuse
        self._wait_timeout = wait_timeout_seconds
        self._wait_interval = wait_poll_interval_seconds
        self._new_invocation_id = invocation_id_factory

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        command_runner: CommandRunner | None = None,
    ) -> TagSpawnService:
        """Wire adapters from a loaded config (``environment.adapter`` selects them)."""

        env_cfg = config["environment"]
        spawn_cfg = config["spawn"]
        wait_cfg = config["wait"]
        adapter = env_cfg["adapter"]

        environment: EnvironmentAdapter
        execution: ExecutionAdapter
        locator: ClientLocator
        if adapter == "live":
            client = WindowManagerClient(
                executable=env_cfg["awesome_client"],
                timeout_seconds=env_cfg["command_timeout_seconds"],
                runner=command_runner,
            )
            environment = LiveEnvironmentAdapter(client)
            execution = LiveExecutionAdapter(client, inherit_env=spawn_cfg["inherit_env"])
            locator = LiveClientLocator(client)
        elif adapter == "dry_run":
            environment = DryRunEnvironmentAdapter()
            execution = DryRunExecutionAdapter()
            locator = DryRunClientLocator()
        elif adapter == "mock":
            environment = MockEnvironmentAdapter()
            execution = MockExecutionAdapter()
            locator = MockClientLocator()
        else:
            raise ValueError(f"unknown environment adapter {adapter!r}")

        return cls(
            environment,
            execution,
            client_locator=locator,
            default_reuse=spawn_cfg["default_reuse"],
            wait_timeout_seconds=wait_cfg["timeout_seconds"],
            wait_poll_interval_seconds=wait_cfg["poll_interval_seconds"],
        )

    def start(self, request: Mapping[str, object] | StartRequest) -> tuple[bool, CombinedResponse]:
        """Run the pipeline and return ``(success, response)``."""

        outcome = self.run(request)
        return outcome.success, outcome.response

    def run(
        self,
        request: Mapping[str, object] | StartRequest,
        *,
        invocation_id: str | None = None,
    ) -> StartOutcome:
        parsed = (
            request
            if isinstance(request, StartRequest)
            else parse_request(request, default_reuse=self.default_reuse)
        )
        if invocation_id is None:
            invocation_id = self._new_invocation_id()

        with correlation_scope(invocation_id=invocation_id, project_name=parsed.project_name):
            logger.info(
                "starting %s with %d resource(s)", parsed.project_name, len(parsed.resources)
            )
            plan = BatchPlanner(self.environment).plan(parsed.resources)
            results = spawn_all(plan, parsed.resources, self.execution)
            success, response = response_builder.build(
                parsed.project_name, plan, results, parsed.resources
            )
            summary = summarize_spawn_results(results)
            logger.info(
                "finished %s: %d/%d launched",
                parsed.project_name,
                summary.successful,
                summary.total_attempts,
                extra={"error_types": summary.error_types},
            )

        return StartOutcome(
            invocation_id=invocation_id,
            success=success,
            response=response,
            spawn_results=tuple(results),
            summary=summary,
        )

    def wait_for_clients(self, response: CombinedResponse) -> dict[str, WaitResult]:
        """Block until each launched resource shows a client, or its wait times out."""

        if self.client_locator is None:
            raise RuntimeError("no client locator configured")
        if not isinstance(response, SuccessResponse):
            return {}
        waiter = ClientAppearanceWaiter(
            self.client_locator,
            timeout_seconds=self._wait_timeout,
            poll_interval_seconds=self._wait_interval,
        )
        waits: dict[str, WaitResult] = {}
        for spawned in response.spawned_resources:
            with correlation_scope(resource_id=spawned.name):
                waits[spawned.name] = waiter.wait(spawned.pid)
        return waits


__all__ = ["StartOutcome", "TagSpawnService"]
