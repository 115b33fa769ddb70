"""Unit tests for invocation and session id generation."""

from __future__ import annotations

import pytest

from tagspawn.domain import ids


def _zero_bytes(size: int) -> bytes:
    return b"\x00" * size


def _ff_bytes(size: int) -> bytes:
    return b"\xff" * size


@pytest.mark.unit
def test_invocation_ids_embed_the_clock() -> None:
    value = ids.generate_invocation_id(clock_ms=lambda: 0, entropy=_zero_bytes)

    assert value == "inv-" + "0" * ids.ULID_LENGTH
    assert ids.generate_invocation_id(clock_ms=lambda: 1, entropy=_zero_bytes).endswith(
        "0000000001" + "0" * 16
    )


@pytest.mark.unit
def test_later_ids_sort_after_earlier_ones() -> None:
    earlier = ids.generate_prefixed_id("mock", clock_ms=lambda: 1000, entropy=_ff_bytes)
    later = ids.generate_prefixed_id("mock", clock_ms=lambda: 1001, entropy=_zero_bytes)

    assert earlier < later


@pytest.mark.unit
def test_generated_ids_do_not_collide() -> None:
    generated = {ids.generate_invocation_id() for _ in range(500)}

    assert len(generated) == 500
    assert all(set(value[4:]) <= set(ids.CROCKFORD_BASE32_ALPHABET) for value in generated)


@pytest.mark.unit
@pytest.mark.parametrize("prefix", ["", "dry-run"])
def test_bad_prefixes_are_rejected(prefix: str) -> None:
    with pytest.raises(ValueError, match="id prefix"):
        ids.generate_prefixed_id(prefix)


@pytest.mark.unit
def test_bad_clock_or_entropy_is_rejected() -> None:
    with pytest.raises(ValueError, match="out of ULID range"):
        ids.generate_invocation_id(clock_ms=lambda: -1)
    with pytest.raises(ValueError, match="must return 10 bytes"):
        ids.generate_invocation_id(entropy=lambda size: b"\x00")
