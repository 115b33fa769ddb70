"""Unit tests for live, dry-run and mock environment adapters."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from tagspawn.adapters.environment import (
    DryRunEnvironmentAdapter,
    LiveEnvironmentAdapter,
    MockEnvironmentAdapter,
    read_snapshot,
)
from tagspawn.adapters.wm_client import CommandExecutionResult, WindowManagerClient
from tagspawn.domain.errors import SlotCreationError, WindowManagerError
from tagspawn.domain.models import Slot


class _ReplyRunner:
    def __init__(self, *stdouts: str) -> None:
        self._stdouts = list(stdouts)
        self.scripts: list[str] = []

    def run(
        self, command: Sequence[str], *, input_text: str, timeout_seconds: float
    ) -> CommandExecutionResult:
        self.scripts.append(input_text)
        return CommandExecutionResult(tuple(command), 0, self._stdouts.pop(0), "")


def _live(*stdouts: str) -> tuple[LiveEnvironmentAdapter, _ReplyRunner]:
    runner = _ReplyRunner(*stdouts)
    return LiveEnvironmentAdapter(WindowManagerClient(runner=runner)), runner


@pytest.mark.unit
def test_live_adapter_reads_index_and_slots() -> None:
    adapter, _ = _live("   double 2\n", '   string "1\t1\n2\tweb\n3\t3"\n')

    snapshot = read_snapshot(adapter)

    assert snapshot.current_index == 2
    assert snapshot.slots == (Slot(1, "1"), Slot(2, "web"), Slot(3, "3"))


@pytest.mark.unit
def test_live_adapter_without_focused_screen_raises() -> None:
    adapter, _ = _live("   double -1\n")

    with pytest.raises(WindowManagerError, match="no focused screen"):
        adapter.get_current_index()


@pytest.mark.unit
def test_live_adapter_creates_named_slot_with_quoted_name() -> None:
    adapter, runner = _live('   string "4\tchat"\n')

    slot = adapter.create_named_slot("chat")

    assert slot == Slot(4, "chat")
    assert 'awful.tag.add("chat"' in runner.scripts[0]


@pytest.mark.unit
def test_live_adapter_creation_error_reply_raises_slot_creation_error() -> None:
    adapter, _ = _live('   string "ERROR: no focused screen"\n')

    with pytest.raises(SlotCreationError) as excinfo:
        adapter.create_named_slot("chat")
    assert excinfo.value.name == "chat"
    assert excinfo.value.reason == "no focused screen"


@pytest.mark.unit
def test_live_adapter_find_by_name_scans_slot_list() -> None:
    adapter, _ = _live('   string "1\t1\n2\tmail"\n', '   string "1\t1"\n')

    assert adapter.find_slot_by_name("mail") == Slot(2, "mail")
    assert adapter.find_slot_by_name("mail") is None


@pytest.mark.unit
def test_dry_run_adapter_simulates_nine_slots_and_logs_operations() -> None:
    adapter = DryRunEnvironmentAdapter()

    assert adapter.get_current_index() == 1
    assert [slot.index for slot in adapter.list_slots()] == list(range(1, 10))

    assert adapter.find_slot_by_name("scratch") is None
    created = adapter.create_named_slot("scratch")
    again = adapter.create_named_slot("scratch")

    assert created == again == Slot(10, "scratch")
    log = adapter.execution_log
    assert [record.operation for record in log] == ["find_slot", "create_slot", "create_slot"]
    assert log[1].details["result"] == "created"
    assert log[2].details["result"] == "existing_found"


@pytest.mark.unit
def test_dry_run_clear_resets_state() -> None:
    adapter = DryRunEnvironmentAdapter(slot_count=3, current_index=2)
    adapter.create_named_slot("extra")

    adapter.clear()

    assert adapter.execution_log == ()
    assert adapter.list_slots() == [Slot(1, "1"), Slot(2, "2"), Slot(3, "3")]
    assert adapter.get_current_index() == 2


@pytest.mark.unit
def test_dry_run_rejects_bad_layout() -> None:
    with pytest.raises(ValueError, match="current_index"):
        DryRunEnvironmentAdapter(slot_count=3, current_index=4)
    with pytest.raises(SlotCreationError):
        DryRunEnvironmentAdapter().create_named_slot("")


@pytest.mark.unit
def test_mock_adapter_records_calls_and_fails_on_request() -> None:
    adapter = MockEnvironmentAdapter(slot_count=2, named_slots=("dev",), fail_creation_for=("x",))

    assert adapter.list_slots() == [Slot(1, "1"), Slot(2, "2"), Slot(3, "dev")]
    assert adapter.create_named_slot("new") == Slot(4, "new")
    with pytest.raises(SlotCreationError, match="creation refused"):
        adapter.create_named_slot("x")
    assert adapter.create_calls == ["new", "x"]
