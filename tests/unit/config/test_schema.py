"""
tagspawn - unit tests for config schema validation

File: tests/unit/config/test_schema.py

Purpose
- Validate strict config schema behavior, structured issues, and profile overlays.

What this test file should cover
- The shipped example config validates.
- Unknown keys and invalid types are reported with dotted paths.
- Cross-field rules (poll interval vs timeout) and schema version guidance.
- Profile overlays deep-merge and re-validate.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from tagspawn.config.schema import (
    ConfigSchemaVersion,
    ConfigValidationError,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

REPO_ROOT = Path(__file__).resolve().parents[3]


def _issue_paths(payload: object) -> set[str]:
    result = validate_config(payload)
    assert not result.is_valid
    return {issue.path for issue in result.issues}


@pytest.mark.unit
def test_defaults_and_example_config_validate() -> None:
    assert validate_config(default_config()).is_valid

    with (REPO_ROOT / "examples" / "tagspawn.toml").open("rb") as handle:
        example = tomllib.load(handle)
    merged = merge_config(default_config(), example)
    assert validate_config(merged).is_valid


@pytest.mark.unit
def test_unknown_key_rejection_is_explicit() -> None:
    config = merge_config(default_config(), {"spawn": {"parallel": True}, "extra": {}})

    paths = _issue_paths(config)

    assert "spawn.parallel" in paths
    assert "extra" in paths


@pytest.mark.unit
def test_type_validation_reports_structured_paths() -> None:
    config = merge_config(
        default_config(),
        {
            "environment": {"adapter": "x11", "command_timeout_seconds": "fast"},
            "spawn": {"default_reuse": "yes"},
            "observability": {"log_level": "chatty"},
        },
    )

    paths = _issue_paths(config)

    assert {
        "environment.adapter",
        "environment.command_timeout_seconds",
        "spawn.default_reuse",
        "observability.log_level",
    } <= paths


@pytest.mark.unit
def test_poll_interval_must_not_exceed_timeout() -> None:
    config = merge_config(
        default_config(), {"wait": {"timeout_seconds": 1.0, "poll_interval_seconds": 2.0}}
    )

    result = validate_config(config)

    assert [issue.path for issue in result.issues] == ["wait.poll_interval_seconds"]
    assert "must not exceed" in result.issues[0].message


@pytest.mark.unit
def test_non_positive_durations_are_rejected() -> None:
    config = merge_config(default_config(), {"wait": {"timeout_seconds": 0}})

    assert "wait.timeout_seconds" in _issue_paths(config)


@pytest.mark.unit
def test_log_level_is_normalized_to_upper_case() -> None:
    config = merge_config(default_config(), {"observability": {"log_level": "debug"}})

    assert assert_valid_config(config)["observability"]["log_level"] == "DEBUG"


@pytest.mark.unit
def test_schema_version_mismatch_carries_migration_guidance() -> None:
    config = merge_config(default_config(), {"meta": {"schema_version": ConfigSchemaVersion + 1}})

    with pytest.raises(ConfigValidationError, match="upgrade tagspawn") as excinfo:
        assert_valid_config(config)
    assert excinfo.value.issues[0].path == "meta.schema_version"
    assert "older than supported" in migration_guidance(0)
    assert migration_guidance(ConfigSchemaVersion) == "schema version is current"


@pytest.mark.unit
def test_builtin_profiles_overlay_and_revalidate() -> None:
    base = default_config()

    dry = apply_profile_overlay(base, "dry-run")
    quiet = apply_profile_overlay(base, "quiet")

    assert dry["environment"]["adapter"] == "dry_run"
    assert dry["environment"]["awesome_client"] == "awesome-client"
    assert quiet["observability"]["log_level"] == "ERROR"
    assert base["environment"]["adapter"] == "live"


@pytest.mark.unit
def test_unknown_profile_lists_known_names() -> None:
    with pytest.raises(ConfigValidationError, match="known: dry-run, quiet"):
        apply_profile_overlay(default_config(), "turbo")


@pytest.mark.unit
def test_profile_overlay_sections_are_validated() -> None:
    config = merge_config(
        default_config(),
        {"profiles": {"slow": {"wait": {"timeout_seconds": -1}}, "Bad Name": {}}},
    )

    paths = _issue_paths(config)

    assert "profiles.slow.wait.timeout_seconds" in paths
    assert "profiles.Bad Name" in paths


@pytest.mark.unit
def test_merge_config_does_not_mutate_inputs() -> None:
    base = default_config()
    overlay = {"spawn": {"default_reuse": True}}

    merged = merge_config(base, overlay)

    assert merged["spawn"] == {"default_reuse": True, "inherit_env": True}
    assert base["spawn"]["default_reuse"] is False
