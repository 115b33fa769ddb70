"""Unit tests for the start service facade and adapter wiring."""

from __future__ import annotations

import pytest

from tagspawn.adapters.clients import DryRunClientLocator, LiveClientLocator, MockClientLocator
from tagspawn.adapters.environment import (
    DryRunEnvironmentAdapter,
    LiveEnvironmentAdapter,
    MockEnvironmentAdapter,
)
from tagspawn.adapters.execution import (
    DryRunExecutionAdapter,
    LiveExecutionAdapter,
    MockExecutionAdapter,
)
from tagspawn.config import default_config, merge_config
from tagspawn.domain.errors import TagMapperError, WindowManagerError
from tagspawn.domain.models import ErrorKind, FailureResponse, Slot, SuccessResponse
from tagspawn.intake import StartRequest
from tagspawn.service import TagSpawnService
from tagspawn.spawn_plane.waiter import ClientInfo


def _config(adapter: str, **sections: dict[str, object]) -> dict[str, object]:
    return merge_config(default_config(), {"environment": {"adapter": adapter}, **sections})


@pytest.mark.unit
@pytest.mark.parametrize(
    ("adapter", "environment_type", "execution_type", "locator_type"),
    [
        ("live", LiveEnvironmentAdapter, LiveExecutionAdapter, LiveClientLocator),
        ("dry_run", DryRunEnvironmentAdapter, DryRunExecutionAdapter, DryRunClientLocator),
        ("mock", MockEnvironmentAdapter, MockExecutionAdapter, MockClientLocator),
    ],
)
def test_from_config_selects_adapters(
    adapter: str, environment_type: type, execution_type: type, locator_type: type
) -> None:
    service = TagSpawnService.from_config(_config(adapter))

    assert isinstance(service.environment, environment_type)
    assert isinstance(service.execution, execution_type)
    assert isinstance(service.client_locator, locator_type)


@pytest.mark.unit
def test_from_config_rejects_unknown_adapter() -> None:
    config = _config("mock")
    config["environment"]["adapter"] = "wayland"  # type: ignore[index]

    with pytest.raises(ValueError, match="unknown environment adapter 'wayland'"):
        TagSpawnService.from_config(config)


@pytest.mark.unit
def test_from_config_passes_default_reuse_to_intake() -> None:
    service = TagSpawnService.from_config(_config("mock", spawn={"default_reuse": True}))

    outcome = service.run(
        {"project_name": "demo", "resources": [{"name": "a", "command": "a"}]},
        invocation_id="inv-test",
    )

    assert outcome.invocation_id == "inv-test"
    assert service.execution.calls[0].properties["reuse"] is True  # type: ignore[attr-defined]


@pytest.mark.unit
def test_run_resolves_and_launches_in_request_order() -> None:
    environment = MockEnvironmentAdapter(current_index=3)
    execution = MockExecutionAdapter()
    service = TagSpawnService(
        environment, execution, invocation_id_factory=lambda: "inv-fixed"
    )

    outcome = service.run(
        {
            "project_name": "demo",
            "resources": [
                {"name": "editor", "command": "gvim", "tag_spec": 1},
                {"name": "mail", "command": "thunderbird", "tag_spec": "mail"},
                {"name": "broken", "command": "x", "tag_spec": ""},
            ],
        }
    )

    assert outcome.invocation_id == "inv-fixed"
    assert outcome.success
    assert isinstance(outcome.response, SuccessResponse)
    assert [call.slot.index for call in execution.calls] == [4, 10]
    assert environment.create_calls == ["mail"]
    assert outcome.summary.total_attempts == 3
    assert outcome.summary.successful == 2
    assert [result.resource_id for result in outcome.spawn_results] == ["editor", "mail", "broken"]


@pytest.mark.unit
def test_start_returns_failure_when_nothing_launches() -> None:
    service = TagSpawnService(
        MockEnvironmentAdapter(), MockExecutionAdapter({"gone": "command not found"})
    )
    request = StartRequest(project_name="demo", resources=())

    success, response = service.start(
        {"project_name": "demo", "resources": [{"name": "gone", "command": "gone"}]}
    )
    empty_success, empty_response = service.start(request)

    assert not success
    assert isinstance(response, FailureResponse)
    assert empty_success
    assert isinstance(empty_response, SuccessResponse)


@pytest.mark.unit
def test_structural_request_problems_propagate() -> None:
    service = TagSpawnService(MockEnvironmentAdapter(), MockExecutionAdapter())

    with pytest.raises(TagMapperError, match="project_name"):
        service.run({"resources": []})


@pytest.mark.unit
def test_wait_for_clients_checks_each_launched_pid() -> None:
    locator = MockClientLocator([ClientInfo(pid=1000, name="gvim"), ClientInfo(pid=1001)])
    service = TagSpawnService(
        MockEnvironmentAdapter(), MockExecutionAdapter(), client_locator=locator
    )
    outcome = service.run(
        {
            "project_name": "demo",
            "resources": [{"name": "a", "command": "a"}, {"name": "b", "command": "b"}],
        }
    )

    waits = service.wait_for_clients(outcome.response)

    assert sorted(waits) == ["a", "b"]
    assert all(result.found for result in waits.values())
    assert locator.lookups == [1000, 1001]


@pytest.mark.unit
def test_wait_for_clients_requires_locator_and_skips_failures() -> None:
    bare = TagSpawnService(MockEnvironmentAdapter(), MockExecutionAdapter())
    with pytest.raises(RuntimeError, match="no client locator"):
        bare.wait_for_clients(bare.run({"project_name": "d", "resources": []}).response)

    service = TagSpawnService.from_config(_config("dry_run"))
    failure = FailureResponse(project_name="d", errors=(), total_attempted=1)
    assert service.wait_for_clients(failure) == {}


@pytest.mark.unit
def test_slot_lookup_failure_does_not_abort_sibling_launches() -> None:
    class _FlakyLookup(MockEnvironmentAdapter):
        def find_slot_by_name(self, name: str) -> Slot | None:
            raise WindowManagerError("awesome-client timed out")

    execution = MockExecutionAdapter()
    service = TagSpawnService(_FlakyLookup(current_index=1), execution)

    success, response = service.start(
        {
            "project_name": "demo",
            "resources": [
                {"name": "editor", "command": "gvim", "tag_spec": 1},
                {"name": "chat", "command": "slack", "tag_spec": "comms"},
            ],
        }
    )

    assert success
    assert isinstance(response, SuccessResponse)
    assert [item.name for item in response.spawned_resources] == ["editor"]
    (tag_error,) = response.tag_errors
    assert tag_error.resource_id == "chat"
    assert tag_error.error.type is ErrorKind.TAG_CREATION_FAILED
    assert execution.spawned_commands == ["gvim"]
