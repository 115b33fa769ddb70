"""Unit tests for single-spec resolution against a snapshot."""

from __future__ import annotations

import pytest

from tagspawn.domain.errors import TagMapperError
from tagspawn.domain.models import (
    AbsoluteSpec,
    EnvironmentSnapshot,
    ErrorKind,
    NamedSpec,
    RelativeSpec,
    Slot,
    SpecKind,
)
from tagspawn.tag_plane.resolver import resolve


def _snapshot(current: int = 3, count: int = 9, names: tuple[str, ...] = ()) -> EnvironmentSnapshot:
    slots = [Slot(index=i, name=str(i)) for i in range(1, count + 1)]
    for offset, name in enumerate(names, start=1):
        slots.append(Slot(index=count + offset, name=name))
    return EnvironmentSnapshot(current_index=current, slots=tuple(slots))


@pytest.mark.unit
def test_relative_offsets_move_from_current_slot() -> None:
    snapshot = _snapshot(current=3)

    assert resolve(RelativeSpec(offset=0), snapshot, resource_id="a").slot == Slot(3, "3")
    assert resolve(RelativeSpec(offset=1), snapshot, resource_id="a").slot == Slot(4, "4")
    assert resolve(RelativeSpec(offset=-2), snapshot, resource_id="a").slot == Slot(1, "1")


@pytest.mark.unit
def test_absolute_index_ignores_current_slot() -> None:
    resolution = resolve(AbsoluteSpec(index=5), _snapshot(current=3), resource_id="browser")

    assert resolution.slot == Slot(5, "5")
    assert resolution.kind is SpecKind.ABSOLUTE
    assert not resolution.fallback
    assert not resolution.needs_creation


@pytest.mark.unit
@pytest.mark.parametrize("spec", [RelativeSpec(offset=7), RelativeSpec(offset=-3), AbsoluteSpec(index=9)])
def test_overflow_falls_back_to_current_slot_with_warning(
    spec: RelativeSpec | AbsoluteSpec,
) -> None:
    snapshot = _snapshot(current=2, count=5)

    resolution = resolve(spec, snapshot, resource_id="term")

    assert resolution.slot == Slot(2, "2")
    assert resolution.fallback
    warning = resolution.warning
    assert warning is not None
    assert warning.type is ErrorKind.TAG_FALLBACK_USED
    assert warning.resource_id == "term"
    assert warning.context["cause"] == "TAG_OVERFLOW"
    assert warning.context["fallback_index"] == 2
    assert warning.context["available_indices"] == [1, 2, 3, 4, 5]


@pytest.mark.unit
def test_existing_name_resolves_without_creation() -> None:
    resolution = resolve(NamedSpec(name="mail"), _snapshot(names=("mail",)), resource_id="m")

    assert resolution.slot == Slot(10, "mail")
    assert resolution.pending_name is None


@pytest.mark.unit
def test_unknown_name_is_left_pending() -> None:
    resolution = resolve(NamedSpec(name="scratch"), _snapshot(), resource_id="s")

    assert resolution.slot is None
    assert resolution.needs_creation
    assert resolution.pending_name == "scratch"


@pytest.mark.unit
def test_missing_current_slot_is_a_mapper_error() -> None:
    snapshot = EnvironmentSnapshot(current_index=4, slots=(Slot(1, "1"), Slot(2, "2")))

    with pytest.raises(TagMapperError, match="no slot at current index 4"):
        resolve(RelativeSpec(offset=5), snapshot, resource_id="x")
