"""
tagspawn - start request intake.

File: src/tagspawn/intake.py

Purpose
- Read a start request from disk (YAML or JSON) and normalize it into a
  ``StartRequest`` holding typed ``Resource`` entries.

Error split
- ``TagMapperError``: the caller handed over something that is not a request
  at all (no project name, no resource list).
- ``RequestError``: the request has the right shape but an entry is malformed
  (missing name/command, wrong field types, duplicate names).
- Placement values are kept raw; they are validated per resource by the planner.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import yaml

from tagspawn.constants import DEFAULT_TAG_SPEC
from tagspawn.domain.errors import RequestError, TagMapperError
from tagspawn.domain.models import Resource

_RESOURCE_FIELDS: Final[frozenset[str]] = frozenset(
    {"name", "command", "tag_spec", "working_dir", "reuse", "env"}
)
_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


@dataclass(frozen=True, slots=True)
class StartRequest:
    project_name: str
    resources: tuple[Resource, ...]


def parse_request(payload: object, *, default_reuse: bool = False) -> StartRequest:
    """Validate a decoded request payload."""

    if not isinstance(payload, Mapping):
        raise TagMapperError(f"start request must be an object, got {type(payload).__name__}")

    project_name = payload.get("project_name")
    if not isinstance(project_name, str) or not project_name.strip():
        raise TagMapperError("project_name must be a non-empty string")

    raw_resources = payload.get("resources")
    if raw_resources is None:
        raise TagMapperError("resources list is required")
    if isinstance(raw_resources, (str, bytes)) or not isinstance(raw_resources, Sequence):
        raise RequestError(f"resources must be a list, got {type(raw_resources).__name__}")

    resources: list[Resource] = []
    seen: set[str] = set()
    for position, entry in enumerate(raw_resources):
        resource = _parse_resource(entry, f"resources[{position}]", default_reuse=default_reuse)
        if resource.id in seen:
            raise RequestError(f"resources[{position}].name: duplicate resource name {resource.id!r}")
        seen.add(resource.id)
        resources.append(resource)

    return StartRequest(project_name=project_name.strip(), resources=tuple(resources))


def load_request_file(path: str | Path) -> object:
    """Decode a request file; ``.yaml``/``.yml`` via PyYAML, anything else as JSON."""

    request_path = Path(path)
    try:
        text = request_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RequestError(f"unable to read request file {request_path}: {exc}") from exc

    if request_path.suffix.lower() in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise RequestError(f"invalid YAML in {request_path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise RequestError(f"invalid JSON in {request_path}: {exc}") from exc


def _parse_resource(entry: object, path: str, *, default_reuse: bool) -> Resource:
    if not isinstance(entry, Mapping):
        raise RequestError(f"{path}: expected object, got {type(entry).__name__}")

    unknown = sorted(str(key) for key in entry if key not in _RESOURCE_FIELDS)
    if unknown:
        raise RequestError(f"{path}: unknown field(s) {', '.join(unknown)}")

    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise RequestError(f"{path}.name: must be a non-empty string")
    command = entry.get("command")
    if not isinstance(command, str) or not command.strip():
        raise RequestError(f"{path}.command: must be a non-empty string")

    working_dir = entry.get("working_dir")
    if working_dir is not None and (not isinstance(working_dir, str) or not working_dir.strip()):
        raise RequestError(f"{path}.working_dir: must be a non-empty string")

    reuse = entry.get("reuse", default_reuse)
    if reuse is None:
        reuse = default_reuse
    if not isinstance(reuse, bool):
        raise RequestError(f"{path}.reuse: must be a boolean")

    return Resource(
        id=name.strip(),
        command=command,
        raw_spec=entry["tag_spec"] if "tag_spec" in entry else DEFAULT_TAG_SPEC,
        working_dir=working_dir,
        reuse=reuse,
        env=_parse_env(entry.get("env"), f"{path}.env"),
    )


def _parse_env(raw: object, path: str) -> dict[str, str]:
    # ``false`` and ``null`` both mean "no extra variables"
    if raw is None or raw is False:
        return {}
    if not isinstance(raw, Mapping):
        raise RequestError(f"{path}: expected object, got {type(raw).__name__}")
    env: dict[str, str] = {}
    for key, value in raw.items():
        if not isinstance(key, str) or not key:
            raise RequestError(f"{path}: keys must be non-empty strings")
        if isinstance(value, bool):
            env[key] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            env[key] = str(value)
        else:
            raise RequestError(f"{path}.{key}: expected a scalar value")
    return env


__all__ = ["StartRequest", "load_request_file", "parse_request"]
