"""Unit tests for the client appearance waiter with a fake clock."""

from __future__ import annotations

import pytest

from tagspawn.adapters.clients import DryRunClientLocator, MockClientLocator
from tagspawn.spawn_plane.waiter import ClientAppearanceWaiter, ClientInfo


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.unit
def test_client_found_on_first_lookup() -> None:
    clock = _FakeClock()
    locator = MockClientLocator([ClientInfo(pid=7, name="xterm", class_name="XTerm", slot_index=2)])
    waiter = ClientAppearanceWaiter(locator, clock=clock, sleep=clock.sleep)

    result = waiter.wait(7)

    assert result.found
    assert result.client is not None and result.client.class_name == "XTerm"
    assert result.attempts == 1
    assert result.elapsed_seconds == 0.0
    assert clock.sleeps == []


@pytest.mark.unit
def test_client_appearing_later_is_polled_at_interval() -> None:
    clock = _FakeClock()
    locator = MockClientLocator([ClientInfo(pid=7)], appear_after=2)
    waiter = ClientAppearanceWaiter(
        locator, timeout_seconds=5.0, poll_interval_seconds=0.5, clock=clock, sleep=clock.sleep
    )

    result = waiter.wait(7)

    assert result.found
    assert result.attempts == 3
    assert clock.sleeps == [0.5, 0.5]
    assert result.elapsed_seconds == pytest.approx(1.0)


@pytest.mark.unit
def test_timeout_returns_not_found_without_oversleeping() -> None:
    clock = _FakeClock()
    waiter = ClientAppearanceWaiter(
        MockClientLocator(),
        timeout_seconds=1.25,
        poll_interval_seconds=0.5,
        clock=clock,
        sleep=clock.sleep,
    )

    result = waiter.wait(99)

    assert not result.found
    assert result.client is None
    assert clock.sleeps == [0.5, 0.5, 0.25]
    assert result.attempts == 4


@pytest.mark.unit
def test_dry_run_locator_only_knows_simulated_pid() -> None:
    locator = DryRunClientLocator()

    assert locator.find_client_by_pid(9999) is not None
    assert locator.find_client_by_pid(1) is None


@pytest.mark.unit
def test_waiter_rejects_invalid_timing() -> None:
    with pytest.raises(ValueError, match="timeout_seconds"):
        ClientAppearanceWaiter(MockClientLocator(), timeout_seconds=0)
    with pytest.raises(ValueError, match="poll_interval_seconds"):
        ClientAppearanceWaiter(MockClientLocator(), poll_interval_seconds=-1)
