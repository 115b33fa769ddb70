"""
tagspawn - unit tests for config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, profiles, env
  overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > profile > file > defaults.
- Deterministic env var path mapping and type coercion.
- Path normalization relative to the config file.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tagspawn.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    env_name_for_path,
    load_config,
)


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.mark.unit
def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    empty_path = tmp_path / "empty.toml"
    config_path = tmp_path / "tagspawn.toml"
    _write_config(empty_path, "")
    _write_config(config_path, "[wait]\ntimeout_seconds = 8.0\n")

    default_loaded = load_config(empty_path, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ={"TAGSPAWN_WAIT_TIMEOUT_SECONDS": "9"})
    cli_loaded = load_config(
        config_path,
        environ={"TAGSPAWN_WAIT_TIMEOUT_SECONDS": "9"},
        cli_overrides={"wait.timeout_seconds": 10.0},
    )

    assert default_loaded["wait"]["timeout_seconds"] == 5.0
    assert file_loaded["wait"]["timeout_seconds"] == 8.0
    assert env_loaded["wait"]["timeout_seconds"] == 9.0
    assert cli_loaded["wait"]["timeout_seconds"] == 10.0


@pytest.mark.unit
def test_profile_sits_between_file_and_env(tmp_path: Path) -> None:
    config_path = tmp_path / "tagspawn.toml"
    _write_config(
        config_path,
        '[environment]\nadapter = "mock"\n\n[profiles.ci.observability]\nlog_level = "WARNING"\n',
    )

    profiled = load_config(config_path, profile="dry-run", environ={})
    env_wins = load_config(
        config_path, profile="dry-run", environ={"TAGSPAWN_ENVIRONMENT_ADAPTER": "mock"}
    )
    from_env = load_config(config_path, environ={"TAGSPAWN_PROFILE": "ci"})
    from_cli = load_config(config_path, cli_overrides={"profile": "quiet"}, environ={})

    assert profiled["environment"]["adapter"] == "dry_run"
    assert env_wins["environment"]["adapter"] == "mock"
    assert from_env["observability"]["log_level"] == "WARNING"
    assert from_cli["observability"]["log_level"] == "ERROR"


@pytest.mark.unit
def test_env_mapping_and_bool_coercion(tmp_path: Path) -> None:
    config_path = tmp_path / "tagspawn.toml"
    _write_config(config_path, "")

    loaded = load_config(
        config_path,
        environ={
            "TAGSPAWN_SPAWN_DEFAULT_REUSE": "yes",
            "TAGSPAWN_OBSERVABILITY_LOG_TO_STDERR": "on",
            "TAGSPAWN_ENVIRONMENT_AWESOME_CLIENT": "/opt/bin/awesome-client",
        },
    )

    assert loaded["spawn"]["default_reuse"] is True
    assert loaded["observability"]["log_to_stderr"] is True
    assert loaded["environment"]["awesome_client"] == "/opt/bin/awesome-client"
    assert env_name_for_path(("wait", "poll_interval_seconds")) == (
        "TAGSPAWN_WAIT_POLL_INTERVAL_SECONDS"
    )


@pytest.mark.unit
def test_invalid_env_coercion_raises_actionable_error(tmp_path: Path) -> None:
    config_path = tmp_path / "tagspawn.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match="TAGSPAWN_SPAWN_INHERIT_ENV -> spawn.inherit_env"):
        load_config(config_path, environ={"TAGSPAWN_SPAWN_INHERIT_ENV": "maybe"})
    with pytest.raises(ConfigLoadError, match="must be a number"):
        load_config(config_path, environ={"TAGSPAWN_WAIT_TIMEOUT_SECONDS": "soon"})


@pytest.mark.unit
def test_invalid_values_surface_as_validation_errors(tmp_path: Path) -> None:
    config_path = tmp_path / "tagspawn.toml"
    _write_config(config_path, '[environment]\nadapter = "wayland"\n')

    with pytest.raises(ConfigValidationError, match="environment.adapter"):
        load_config(config_path, environ={})


@pytest.mark.unit
def test_missing_explicit_file_and_bad_toml_raise_load_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "absent.toml", environ={})

    broken = tmp_path / "broken.toml"
    _write_config(broken, "[wait\n")
    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(broken, environ={})


@pytest.mark.unit
def test_missing_default_file_falls_back_to_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    loaded = load_config(environ={})

    assert loaded["environment"]["adapter"] == "live"


@pytest.mark.unit
def test_path_normalization_is_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "tagspawn.toml"
    _write_config(config_path, '[observability]\nlog_dir = "../state/logs"\n')

    loaded = load_config(config_path, environ={})

    assert loaded["observability"]["log_dir"] == (tmp_path / "state" / "logs").resolve().as_posix()


@pytest.mark.unit
def test_dump_effective_config_is_deterministic(tmp_path: Path) -> None:
    config_path = tmp_path / "tagspawn.toml"
    _write_config(config_path, "")

    first = dump_effective_config(load_config(config_path, environ={}))
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    assert json.loads(first)["meta"]["schema_version"] == 1
