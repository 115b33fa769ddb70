"""
tagspawn - unit tests for the spawn orchestrator

File: tests/unit/spawn_plane/test_orchestrator.py

Purpose
- Validate sequential launch semantics: input order, skip-on-missing-slot,
  per-resource failure isolation, and classified error suggestions.
"""

from __future__ import annotations

import pytest

from tagspawn.adapters.environment import MockEnvironmentAdapter
from tagspawn.adapters.execution import MockExecutionAdapter
from tagspawn.domain.models import ErrorKind, ErrorPhase, Resource, TagOperationPlan
from tagspawn.spawn_plane.orchestrator import spawn_all
from tagspawn.tag_plane.planner import plan


def _resource(name: str, spec: object = 0, command: str | None = None, **extra: object) -> Resource:
    return Resource(id=name, command=command or name, raw_spec=spec, **extra)  # type: ignore[arg-type]


@pytest.mark.unit
def test_launches_every_assigned_resource_in_order() -> None:
    resources = [_resource("editor", 1), _resource("browser", "5"), _resource("term", "-1")]
    execution = MockExecutionAdapter(first_pid=100)

    results = spawn_all(plan(resources, MockEnvironmentAdapter(current_index=3)), resources, execution)

    assert [r.resource_id for r in results] == ["editor", "browser", "term"]
    assert [r.pid for r in results] == [100, 101, 102]
    assert all(r.success for r in results)
    assert [call.slot.index for call in execution.calls] == [4, 5, 2]


@pytest.mark.unit
def test_properties_are_passed_through_to_adapter() -> None:
    resource = _resource("proj", 0, env={"DEBUG": "1"}, working_dir="~/proj", reuse=True)
    execution = MockExecutionAdapter()

    spawn_all(plan([resource], MockEnvironmentAdapter()), [resource], execution)

    assert execution.calls[0].properties == {
        "working_dir": "~/proj",
        "reuse": True,
        "env": {"DEBUG": "1"},
    }


@pytest.mark.unit
def test_resource_without_slot_is_skipped_not_launched() -> None:
    resources = [_resource("bad", "not valid"), _resource("good", 0)]
    tag_plan = plan(resources, MockEnvironmentAdapter())
    execution = MockExecutionAdapter()

    results = spawn_all(tag_plan, resources, execution)

    assert execution.spawned_commands == ["good"]
    skipped = results[0]
    assert not skipped.success
    assert skipped.skipped
    assert skipped.error is not None
    assert skipped.error.message.startswith("not launched: invalid tag name format")
    assert skipped.error.context["cause"] == ErrorKind.TAG_SPEC_INVALID.value
    assert skipped.error.classified_type == "TAG_RESOLUTION_FAILED"
    assert results[1].success


@pytest.mark.unit
def test_missing_assignment_without_planner_error_is_still_skipped() -> None:
    resource = _resource("orphan", 0)

    results = spawn_all(TagOperationPlan(), [resource], MockExecutionAdapter())

    assert results[0].skipped
    assert results[0].error is not None
    assert results[0].error.message == "not launched: no slot was assigned"
    assert results[0].error.context["cause"] is None


@pytest.mark.unit
def test_adapter_error_string_becomes_classified_spawn_failure() -> None:
    resources = [_resource("slack"), _resource("xterm")]
    execution = MockExecutionAdapter({"slack": "execvp: No such file or directory"})

    results = spawn_all(plan(resources, MockEnvironmentAdapter()), resources, execution)

    failed = results[0]
    assert not failed.success
    assert not failed.skipped
    error = failed.error
    assert error is not None
    assert error.type is ErrorKind.SPAWN_FAILURE
    assert error.phase is ErrorPhase.SPAWNING
    assert error.context == {"command": "slack"}
    assert error.classified_type == "COMMAND_NOT_FOUND"
    assert error.suggestions[0] == "Check if 'slack' is installed"
    assert len(error.suggestions) == 3
    assert results[1].success


@pytest.mark.unit
def test_adapter_exception_does_not_abort_batch() -> None:
    resources = [_resource("boom"), _resource("after")]
    execution = MockExecutionAdapter({"boom": PermissionError("permission denied: /bin/boom")})

    results = spawn_all(plan(resources, MockEnvironmentAdapter()), resources, execution)

    assert results[0].error is not None
    assert "PermissionError" in results[0].error.message
    assert results[0].error.classified_type == "PERMISSION_DENIED"
    assert results[1].success
