"""Output rendering for the tagspawn CLI.

File: src/tagspawn/ui/render.py

Purpose
- Plain-text rendering of start responses, plans and validation reports.
- Respect the ``NO_COLOR`` environment variable and the ``--no-color`` flag.

Only the standard library is used; output is deterministic so it can be
asserted in tests with ``capsys``.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from tagspawn.domain.models import FailureResponse, SuccessResponse
from tagspawn.reporting.classifier import format_errors_by_phase

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from tagspawn.domain.models import CombinedResponse, TagOperationPlan
    from tagspawn.reporting.classifier import SpawnSummary
    from tagspawn.spawn_plane.waiter import WaitResult

_GREEN = "\033[32m"
_RED = "\033[31m"
_RESET = "\033[0m"


def _color_allowed(no_color_flag: bool, stream: TextIO) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class CLIRenderer:
    """Thin CLI output renderer writing to ``stream`` (stdout by default)."""

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self.verbose = verbose
        self._stream = stream
        self._color = _color_allowed(no_color, self.stream)

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def _write(self, line: str = "") -> None:
        print(line, file=self.stream)

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{_RESET}" if self._color else text

    def kv(self, key: str, value: object) -> None:
        self._write(f"{key}: {value}")

    def text(self, line: str) -> None:
        self._write(line)

    def section(self, title: str) -> None:
        self._write(f"\n{title}")

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self._write(f"  {prefix}{entry}")

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        """Print a formatted ASCII table; nothing is printed for zero rows."""

        if not rows:
            return

        col_count = len(headers)
        widths = [len(h) for h in headers]
        for row in rows:
            for i in range(min(len(row), col_count)):
                widths[i] = max(widths[i], len(str(row[i])))

        def _pad(cells: Sequence[str]) -> str:
            return "  ".join(
                (str(cells[i]) if i < len(cells) else "").ljust(widths[i])
                for i in range(col_count)
            ).rstrip()

        if title:
            self.section(title)
        self._write(f"  {_pad(list(headers))}")
        self._write(f"  {'  '.join('-' * w for w in widths)}")
        for row in rows:
            self._write(f"  {_pad(list(row))}")

    def ok(self, label: str) -> None:
        self._write(f"  {self._paint('OK', _GREEN)}  {label}")

    def fail(self, label: str) -> None:
        self._write(f"  {self._paint('FAIL', _RED)}  {label}")

    # -- domain views -----------------------------------------------------

    def plan(self, plan: TagOperationPlan) -> None:
        rows = [
            [
                item.resource_id,
                str(item.resolved_index),
                item.resolved_name,
                item.kind.value,
                _flags(created=item.created, fallback=item.fallback),
            ]
            for item in plan.assignments
        ]
        self.table(["RESOURCE", "SLOT", "NAME", "KIND", "NOTES"], rows, title="Placement:")
        if plan.warnings:
            self.section("Warnings:")
            self.items([f"{w.resource_id}: {w.message}" for w in plan.warnings])

    def response(self, response: CombinedResponse, summary: SpawnSummary | None = None) -> None:
        self.kv("Project", response.project_name)
        if isinstance(response, FailureResponse):
            self.kv("Result", self._paint("failed", _RED))
            self.kv("Attempted", response.total_attempted)
            self.section(format_errors_by_phase(list(response.errors)))
        elif isinstance(response, SuccessResponse):
            label = "partial" if response.has_warnings else "ok"
            self.kv("Result", self._paint(label, _RED if response.has_warnings else _GREEN))
            self.kv("Spawned", response.total_spawned)
            self.table(
                ["RESOURCE", "PID", "COMMAND"],
                [
                    [item.name, str(item.pid), item.command]
                    for item in response.spawned_resources
                ],
                title="Launched:",
            )
            if self.verbose:
                self.plan(response.tag_operations)
            if response.has_warnings:
                self.section(
                    format_errors_by_phase([*response.tag_errors, *response.spawn_errors])
                )

        if summary is not None and summary.recommendations:
            self.section("Recommendations:")
            self.items(list(summary.recommendations))

    def waits(self, waits: Mapping[str, WaitResult]) -> None:
        if not waits:
            return
        self.section("Client windows:")
        for name, result in waits.items():
            label = f"{name} (pid {result.pid}, {result.elapsed_seconds:.1f}s)"
            if result.found:
                self.ok(label)
            else:
                self.fail(label)


def _flags(*, created: bool, fallback: bool) -> str:
    notes = []
    if created:
        notes.append("created")
    if fallback:
        notes.append("fallback")
    return ",".join(notes)


def create_renderer(
    *, no_color: bool = False, verbose: bool = False, stream: TextIO | None = None
) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
