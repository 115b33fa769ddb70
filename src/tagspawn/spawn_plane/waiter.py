"""Poll for a launched client window to appear, with an injectable clock."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from tagspawn.domain.models import CanonicalModel

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.5


@dataclass(frozen=True, slots=True)
class ClientInfo(CanonicalModel):
    pid: int
    name: str = ""
    class_name: str = ""
    slot_index: int | None = None


class ClientLocator(Protocol):
    def find_client_by_pid(self, pid: int) -> ClientInfo | None: ...


@dataclass(frozen=True, slots=True)
class WaitResult(CanonicalModel):
    pid: int
    found: bool
    client: ClientInfo | None
    elapsed_seconds: float
    attempts: int


class ClientAppearanceWaiter:
    """Wait until a client owned by ``pid`` is visible to the window manager."""

    def __init__(
        self,
        locator: ClientLocator,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        self._locator = locator
        self._timeout = timeout_seconds
        self._interval = poll_interval_seconds
        self._clock = clock
        self._sleep = sleep

    def wait(self, pid: int) -> WaitResult:
        started = self._clock()
        attempts = 0
        while True:
            attempts += 1
            client = self._locator.find_client_by_pid(pid)
            elapsed = self._clock() - started
            if client is not None:
                logger.debug("client for pid %d appeared after %.2fs", pid, elapsed)
                return WaitResult(pid, True, client, elapsed, attempts)
            if elapsed >= self._timeout:
                logger.info("timed out waiting for client of pid %d", pid)
                return WaitResult(pid, False, None, elapsed, attempts)
            self._sleep(min(self._interval, self._timeout - elapsed))


__all__ = [
    "ClientAppearanceWaiter",
    "ClientInfo",
    "ClientLocator",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_TIMEOUT_SECONDS",
    "WaitResult",
]
