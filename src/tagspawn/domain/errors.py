"""Exception types raised across tagspawn planes."""

from __future__ import annotations

from tagspawn.domain.models import ErrorKind


class TagSpecError(ValueError):
    """Raised when a raw placement specification cannot be parsed."""

    def __init__(self, message: str, *, raw: object = None) -> None:
        super().__init__(message)
        self.raw = raw


class TagMapperError(RuntimeError):
    """Fatal programmer-error condition; aborts the whole invocation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.kind = ErrorKind.CRITICAL_TAG_MAPPER_ERROR


class SlotCreationError(RuntimeError):
    """Raised by environment adapters when a named slot cannot be created."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"could not create slot {name!r}: {reason}")
        self.name = name
        self.reason = reason


class WindowManagerError(RuntimeError):
    """Raised when the window-manager command bridge fails."""


class RequestError(ValueError):
    """Raised when a start request payload is structurally invalid."""


__all__ = [
    "RequestError",
    "SlotCreationError",
    "TagMapperError",
    "TagSpecError",
    "WindowManagerError",
]
