"""Command-line interface router for tagspawn."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from tagspawn.config import (
    ADAPTER_NAMES,
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from tagspawn.domain.ids import generate_invocation_id
from tagspawn.intake import load_request_file, parse_request
from tagspawn.main import ExitCode
from tagspawn.observability import configure_from_settings, correlation_scope, shutdown_logging
from tagspawn.service import TagSpawnService
from tagspawn.tag_plane import BatchPlanner, describe, try_parse
from tagspawn.ui.render import CLIRenderer, create_renderer


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = int(ExitCode.CONFIG_ERROR)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="tagspawn",
        description=(
            "tagspawn - launch a project's applications onto window-manager tags.\n\n"
            "Common workflows:\n"
            "  tagspawn start project.yaml          Resolve tags and launch everything\n"
            "  tagspawn start project.yaml --dry-run\n"
            "  tagspawn validate project.yaml       Check tag specifications only\n"
            "  tagspawn config --json               Show the effective config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to TOML config (default: ./tagspawn.toml if present).",
    )
    common.add_argument("--profile", default=None, help="Optional config profile overlay name.")
    common.add_argument(
        "--verbose", "-v", action="store_true", default=False, help="Show detailed output."
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")

    runtime = argparse.ArgumentParser(add_help=False)
    runtime.add_argument(
        "--adapter",
        choices=ADAPTER_NAMES,
        default=None,
        help="Override environment.adapter for this invocation.",
    )
    runtime.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Simulate tag operations and launches (same as --adapter dry_run).",
    )
    runtime.add_argument("--log-dir", default=None, help="Override observability.log_dir.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser(
        "start",
        parents=[common, runtime],
        help="Resolve tags and launch every resource in a request",
        description=(
            "Read a start request (YAML or JSON), resolve each resource's tag, and launch it.\n\n"
            "Examples:\n"
            "  tagspawn start project.yaml\n"
            "  tagspawn start project.json --json\n"
            "  tagspawn start project.yaml --wait\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    start_parser.add_argument("request_path", help="Path to the start request file")
    start_parser.add_argument(
        "--wait",
        action="store_true",
        default=False,
        help="Wait for each launched application's window to appear.",
    )
    start_parser.set_defaults(handler=_cmd_start)

    plan_parser = subparsers.add_parser(
        "plan",
        parents=[common, runtime],
        help="Resolve tags without launching anything",
        description=(
            "Resolve every resource's tag against the environment and print the placement.\n"
            "Named tags that do not exist yet are created, exactly as 'start' would.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    plan_parser.add_argument("request_path", help="Path to the start request file")
    plan_parser.set_defaults(handler=_cmd_plan)

    validate_parser = subparsers.add_parser(
        "validate",
        parents=[common],
        help="Check a request file and its tag specifications",
    )
    validate_parser.add_argument("request_path", help="Path to the start request file")
    validate_parser.set_defaults(handler=_cmd_validate)

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the effective configuration",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_start(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    service = TagSpawnService.from_config(config)
    request = parse_request(
        load_request_file(_request_path(args)),
        default_reuse=bool(config["spawn"]["default_reuse"]),
    )

    invocation_id = generate_invocation_id()
    handle = configure_from_settings(config["observability"], invocation_id=invocation_id)
    try:
        outcome = service.run(request, invocation_id=invocation_id)
        waits = service.wait_for_clients(outcome.response) if _flag(args, "wait") else {}
    finally:
        shutdown_logging()

    exit_code = ExitCode.SUCCESS if outcome.success else ExitCode.SPAWN_FAILED

    if _flag(args, "json"):
        payload = outcome.response.to_dict()
        if waits:
            payload["clients"] = {name: result.to_dict() for name, result in waits.items()}
        _emit_json(payload)
        return int(exit_code)

    renderer = _get_renderer(args)
    renderer.response(outcome.response, outcome.summary)
    renderer.waits(waits)
    if handle.log_path is not None and renderer.verbose:
        renderer.kv("\nLog", handle.log_path)
    return int(exit_code)


def _cmd_plan(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    service = TagSpawnService.from_config(config)
    request = parse_request(
        load_request_file(_request_path(args)),
        default_reuse=bool(config["spawn"]["default_reuse"]),
    )

    invocation_id = generate_invocation_id()
    configure_from_settings(config["observability"], invocation_id=invocation_id)
    try:
        with correlation_scope(invocation_id=invocation_id, project_name=request.project_name):
            plan = BatchPlanner(service.environment).plan(request.resources)
    finally:
        shutdown_logging()

    exit_code = ExitCode.SPAWN_FAILED if plan.errors else ExitCode.SUCCESS

    if _flag(args, "json"):
        _emit_json({"project_name": request.project_name, "plan": plan.to_dict()})
        return int(exit_code)

    renderer = _get_renderer(args)
    renderer.kv("Project", request.project_name)
    renderer.plan(plan)
    if plan.errors:
        renderer.section("Errors:")
        renderer.items([f"{error.resource_id}: {error.message}" for error in plan.errors])
    return int(exit_code)


def _cmd_validate(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    request = parse_request(
        load_request_file(_request_path(args)),
        default_reuse=bool(config["spawn"]["default_reuse"]),
    )

    checks: list[dict[str, object]] = []
    for resource in request.resources:
        outcome = try_parse(resource.raw_spec)
        checks.append(
            {
                "name": resource.id,
                "valid": outcome.ok,
                "description": describe(outcome.spec) if outcome.spec is not None else None,
                "error": outcome.error,
            }
        )
    invalid = [check for check in checks if not check["valid"]]
    exit_code = ExitCode.REQUEST_ERROR if invalid else ExitCode.SUCCESS

    if _flag(args, "json"):
        _emit_json(
            {
                "project_name": request.project_name,
                "valid": not invalid,
                "resources": checks,
            }
        )
        return int(exit_code)

    renderer = _get_renderer(args)
    renderer.kv("Project", request.project_name)
    for check in checks:
        if check["valid"]:
            renderer.ok(f"{check['name']}: {check['description']}")
        else:
            renderer.fail(f"{check['name']}: {check['error']}")
    return int(exit_code)


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    profile = _optional_str(getattr(args, "profile", None))

    if _flag(args, "json"):
        _emit_json({"active_profile": profile, "config": config})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.kv("Active profile", profile or "(default)")
    renderer.text(dump_effective_config(config))
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


def _load_effective_config(args: argparse.Namespace) -> dict[str, object]:
    config_path = _optional_str(getattr(args, "config_path", None))
    profile = _optional_str(getattr(args, "profile", None))

    try:
        return load_config(config_path, profile=profile, cli_overrides=_cli_overrides(args))
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=int(ExitCode.CONFIG_ERROR)) from exc


def _cli_overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    adapter = _optional_str(getattr(args, "adapter", None))
    if _flag(args, "dry_run"):
        if adapter not in (None, "dry_run"):
            raise CLIError("--dry-run conflicts with --adapter " + str(adapter))
        adapter = "dry_run"
    if adapter is not None:
        overrides["environment.adapter"] = adapter
    log_dir = _optional_str(getattr(args, "log_dir", None))
    if log_dir is not None:
        overrides["observability.log_dir"] = log_dir
    return overrides


def _request_path(args: argparse.Namespace) -> Path:
    raw = _optional_str(getattr(args, "request_path", None))
    if raw is None:
        raise CLIError("a request file is required", exit_code=int(ExitCode.REQUEST_ERROR))
    path = Path(raw).expanduser()
    if not path.is_file():
        raise CLIError(
            f"request file does not exist: {path}", exit_code=int(ExitCode.REQUEST_ERROR)
        )
    return path


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
