"""Tests for variant resolution."""

import pytest

from core.types import Variant
from core.variant_resolver import (
    NOT_FOUND,
    NotFoundVariant,
    find_by_color,
    is_size_available,
    resolve,
)


def _variant(variant_id: str, active: bool = True, **attributes) -> Variant:
    return Variant.model_validate({"_id": variant_id, "attributes": attributes, "active": active})


@pytest.fixture
def variants():
    return [
        _variant("red", color="Red", size="S,M"),
        _variant("blue", color="Blue", size="L"),
        _variant("green-off", color="Green", size="S", active=False),
        _variant("black-128", color="Black", storage="128GB", ram="8GB"),
        _variant("black-256", color="Black", storage="256GB", ram="8GB"),
    ]


def test_every_active_variant_resolves_to_itself(variants) -> None:
    for variant in variants:
        if not variant.active:
            continue
        size = variant.size_options[0] if variant.size_options else None
        resolved = resolve(variants, variant.color, size, variant.storage, variant.ram)
        assert resolved.id == variant.id


def test_size_matches_any_token_of_compound_field(variants) -> None:
    assert resolve(variants, color="Red", size="M").id == "red"
    assert resolve(variants, color="Red", size="L") is NOT_FOUND


def test_empty_inputs_are_wildcards(variants) -> None:
    assert resolve(variants).id == "red"
    assert resolve(variants, color="Black", storage="", ram="8GB").id == "black-128"
    assert resolve(variants, storage="256GB").id == "black-256"


def test_inactive_variants_never_match(variants) -> None:
    assert resolve(variants, color="Green") is NOT_FOUND
    assert find_by_color(variants, "Green") is NOT_FOUND


def test_first_match_in_list_order_wins() -> None:
    duplicates = [_variant("first", color="Red", size="M"), _variant("second", color="Red", size="M")]
    assert resolve(duplicates, color="Red", size="M").id == "first"


def test_not_found_is_a_falsy_singleton() -> None:
    assert not NOT_FOUND
    assert NotFoundVariant() is NOT_FOUND
    assert repr(NOT_FOUND) == "NOT_FOUND"


def test_find_by_color_ignores_other_dimensions(variants) -> None:
    assert find_by_color(variants, "Black").id == "black-128"
    assert find_by_color(variants, "") is NOT_FOUND


def test_is_size_available(variants) -> None:
    assert is_size_available(variants, "XXL", None) is True
    assert is_size_available(variants, "M", "Red") is True
    assert is_size_available(variants, "L", "Red") is False
    assert is_size_available(variants, "S", "Purple") is False
    assert is_size_available(variants, "S", "Black") is False
