"""Client lookup for the appearance waiter: live, dry-run and mock locators."""

from __future__ import annotations

from collections.abc import Iterable

from tagspawn.adapters.wm_client import WindowManagerClient
from tagspawn.constants import DRY_RUN_PID
from tagspawn.domain.errors import WindowManagerError
from tagspawn.spawn_plane.waiter import ClientInfo

_LUA_FIND_BY_PID = """
for _, c in ipairs(client.get()) do
  if c.pid == {pid} then
    local idx = ""
    if c.first_tag then idx = tostring(c.first_tag.index) end
    return tostring(c.pid) .. "\\t" .. (c.name or "") .. "\\t" .. (c.class or "") .. "\\t" .. idx
  end
end
return ""
"""


class LiveClientLocator:
    def __init__(self, client: WindowManagerClient) -> None:
        self._client = client

    def find_client_by_pid(self, pid: int) -> ClientInfo | None:
        reply = self._client.evaluate_str(_LUA_FIND_BY_PID.format(pid=int(pid)))
        if not reply:
            return None
        fields = reply.split("\t")
        if len(fields) != 4:
            raise WindowManagerError(f"malformed client reply {reply!r}")
        raw_pid, name, class_name, raw_index = fields
        return ClientInfo(
            pid=int(raw_pid),
            name=name,
            class_name=class_name,
            slot_index=int(raw_index) if raw_index else None,
        )


class DryRunClientLocator:
    """Every simulated launch is immediately visible."""

    def find_client_by_pid(self, pid: int) -> ClientInfo | None:
        if pid == DRY_RUN_PID:
            return ClientInfo(pid=pid, name="dry-run client", class_name="dry-run")
        return None


class MockClientLocator:
    """Clients appear after a configurable number of lookups."""

    def __init__(self, clients: Iterable[ClientInfo] = (), *, appear_after: int = 0) -> None:
        self.clients = {info.pid: info for info in clients}
        self.appear_after = appear_after
        self.lookups: list[int] = []

    def find_client_by_pid(self, pid: int) -> ClientInfo | None:
        self.lookups.append(pid)
        if self.lookups.count(pid) <= self.appear_after:
            return None
        return self.clients.get(pid)


__all__ = ["DryRunClientLocator", "LiveClientLocator", "MockClientLocator"]
