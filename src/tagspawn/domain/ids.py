"""Sortable identifiers for invocations and simulated launch sessions.

Identifiers look like ``<prefix>-<ulid>``: a short tag naming what the id labels,
then a 26-character Crockford Base32 ULID (48-bit millisecond clock followed by
80 random bits), so ids created later sort after earlier ones.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable
from typing import Final

CROCKFORD_BASE32_ALPHABET: Final[str] = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ULID_LENGTH: Final[int] = 26

INVOCATION_ID_PREFIX: Final[str] = "inv"
DRY_RUN_SESSION_PREFIX: Final[str] = "dryrun"
MOCK_SESSION_PREFIX: Final[str] = "mock"

_RANDOM_BITS: Final[int] = 80
_CLOCK_LIMIT_MS: Final[int] = (1 << 48) - 1

_Clock = Callable[[], int]
_Entropy = Callable[[int], bytes]

__all__ = [
    "DRY_RUN_SESSION_PREFIX",
    "INVOCATION_ID_PREFIX",
    "MOCK_SESSION_PREFIX",
    "ULID_LENGTH",
    "generate_invocation_id",
    "generate_prefixed_id",
]


def generate_prefixed_id(
    prefix: str,
    *,
    clock_ms: _Clock | None = None,
    entropy: _Entropy | None = None,
) -> str:
    """Return ``<prefix>-<ulid>``; ``prefix`` must be non-empty and dash-free."""
    if not isinstance(prefix, str) or not prefix or "-" in prefix:
        raise ValueError(f"id prefix must be a non-empty string without '-', got {prefix!r}")

    now_ms = (clock_ms or _wall_clock_ms)()
    if not 0 <= now_ms <= _CLOCK_LIMIT_MS:
        raise ValueError(f"clock value out of ULID range: {now_ms}")
    noise = (entropy or secrets.token_bytes)(_RANDOM_BITS // 8)
    if len(noise) != _RANDOM_BITS // 8:
        raise ValueError(f"entropy source must return {_RANDOM_BITS // 8} bytes")

    value = (now_ms << _RANDOM_BITS) | int.from_bytes(noise, "big")
    return f"{prefix}-{_crockford(value)}"


def generate_invocation_id(
    *, clock_ms: _Clock | None = None, entropy: _Entropy | None = None
) -> str:
    return generate_prefixed_id(INVOCATION_ID_PREFIX, clock_ms=clock_ms, entropy=entropy)


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


def _crockford(value: int) -> str:
    chars = []
    for _ in range(ULID_LENGTH):
        chars.append(CROCKFORD_BASE32_ALPHABET[value & 0b11111])
        value >>= 5
    return "".join(reversed(chars))
