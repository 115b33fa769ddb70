"""Tag-plane public API: parse, resolve, and batch-plan slot placement."""

from tagspawn.tag_plane.planner import BatchPlanner, plan
from tagspawn.tag_plane.resolver import Resolution, resolve
from tagspawn.tag_plane.spec_parser import ParseOutcome, describe, parse, try_parse, validate

__all__ = [
    "BatchPlanner",
    "ParseOutcome",
    "Resolution",
    "describe",
    "parse",
    "plan",
    "resolve",
    "try_parse",
    "validate",
]
