"""
tagspawn - unit tests for combined response construction

File: tests/unit/reporting/test_response.py

Purpose
- Pin the success decision (fail only when nothing launched out of a non-empty
  batch), the warning attachment rules, and the serialized shapes.
"""

from __future__ import annotations

import pytest

from tagspawn.adapters.environment import MockEnvironmentAdapter
from tagspawn.adapters.execution import MockExecutionAdapter
from tagspawn.domain.errors import TagMapperError
from tagspawn.domain.models import FailureResponse, Resource, SuccessResponse, TagOperationPlan
from tagspawn.reporting.response import build
from tagspawn.spawn_plane.orchestrator import spawn_all
from tagspawn.tag_plane.planner import plan


def _run(resources: list[Resource], execution: MockExecutionAdapter | None = None):  # type: ignore[no-untyped-def]
    tag_plan = plan(resources, MockEnvironmentAdapter(current_index=3))
    results = spawn_all(tag_plan, resources, execution or MockExecutionAdapter())
    return build("demo", tag_plan, results, resources)


@pytest.mark.unit
def test_all_launched_is_clean_success() -> None:
    resources = [Resource(id="a", command="a", raw_spec=0), Resource(id="b", command="b", raw_spec="2")]

    success, response = _run(resources)

    assert success
    assert isinstance(response, SuccessResponse)
    assert response.total_spawned == 2
    assert not response.has_warnings
    payload = response.to_dict()
    assert "warnings" not in payload
    assert payload["spawned_resources"][0] == {  # type: ignore[index]
        "name": "a",
        "pid": 1000,
        "session_id": response.spawned_resources[0].session_id,
        "command": "a",
        "tag_spec": 0,
    }
    assert payload["tag_operations"]["total_created"] == 0  # type: ignore[index]


@pytest.mark.unit
def test_partial_launch_is_success_with_warnings() -> None:
    resources = [
        Resource(id="ok", command="ok", raw_spec=0),
        Resource(id="bad-spec", command="x", raw_spec=""),
        Resource(id="missing", command="missing", raw_spec=0),
    ]

    success, response = _run(resources, MockExecutionAdapter({"missing": "command not found"}))

    assert success
    assert isinstance(response, SuccessResponse)
    assert response.total_spawned == 1
    assert [e.resource_id for e in response.tag_errors] == ["bad-spec"]
    assert [e.resource_id for e in response.spawn_errors] == ["missing"]
    warnings = response.to_dict()["warnings"]
    assert len(warnings["tag_errors"]) == 1  # type: ignore[index]
    assert len(warnings["spawn_errors"]) == 1  # type: ignore[index]


@pytest.mark.unit
def test_nothing_launched_is_complete_failure() -> None:
    resources = [
        Resource(id="bad", command="x", raw_spec=None),
        Resource(id="gone", command="gone", raw_spec=0),
    ]

    success, response = _run(resources, MockExecutionAdapter({"gone": "No such file or directory"}))

    assert not success
    assert isinstance(response, FailureResponse)
    assert response.error_count == 2
    payload = response.to_dict()
    assert payload["error_type"] == "COMPLETE_FAILURE"
    assert payload["metadata"] == {"total_attempted": 2, "success_count": 0, "error_count": 2}
    assert [e["phase"] for e in payload["errors"]] == [  # type: ignore[index,union-attr]
        "tag_resolution",
        "spawning",
    ]


@pytest.mark.unit
def test_empty_batch_is_success() -> None:
    success, response = _run([])

    assert success
    assert isinstance(response, SuccessResponse)
    assert response.total_spawned == 0
    assert not response.has_warnings


@pytest.mark.unit
def test_resource_without_outcome_is_a_mapper_error() -> None:
    resources = [Resource(id="lost", command="lost", raw_spec=0)]

    with pytest.raises(TagMapperError, match="no outcome recorded for resource 'lost'"):
        build("demo", TagOperationPlan(), [], resources)
