"""Tests for attribute option extraction."""

from core.attribute_extractor import (
    detect_variant_type,
    extract_attribute_options,
    sort_sizes,
)
from core.types import AttributeDimension, Variant, VariantType


def _variant(variant_id: str, active: bool = True, images=None, **attributes) -> Variant:
    return Variant.model_validate(
        {"_id": variant_id, "attributes": attributes, "active": active, "images": images or []}
    )


def test_sort_sizes_ranked_then_numeric_then_lexical() -> None:
    assert sort_sizes(["L", "XS", "2XL", "7", "S"]) == ["XS", "S", "L", "2XL", "7"]
    assert sort_sizes(["One Size", "42", "m", "8", "xl"]) == ["m", "xl", "8", "42", "One Size"]


def test_compound_sizes_are_split_deduped_and_sorted() -> None:
    variants = [
        _variant("a", color="Red", size="M, S ,L"),
        _variant("b", color="Blue", size="L,XL,"),
    ]

    options = extract_attribute_options(variants)

    assert options.sizes == ("S", "M", "L", "XL")
    assert options.sizes_for_color("Red") == ["M", "S", "L"]
    assert options.sizes_for_color("Blue") == ["L", "XL"]


def test_sizes_for_color_falls_back_to_full_list() -> None:
    variants = [
        _variant("a", color="Red", size="S,M,L"),
        _variant("b", color="Green"),
    ]

    options = extract_attribute_options(variants)

    assert options.sizes_for_color(None) == ["S", "M", "L"]
    assert options.sizes_for_color("Purple") == ["S", "M", "L"]
    assert options.sizes_for_color("Green") == ["S", "M", "L"]


def test_only_active_variants_contribute_in_first_seen_order() -> None:
    variants = [
        _variant("a", color="Black", storage="128GB", ram="8GB"),
        _variant("b", color="White", storage="256GB", ram="8GB", active=False),
        _variant("c", color="Silver", storage="256GB", ram="12GB"),
        _variant("d", color="Black", storage="512GB", ram="12GB"),
    ]

    options = extract_attribute_options(variants)

    assert options.colors == ("Black", "Silver")
    assert options.storages == ("128GB", "256GB", "512GB")
    assert options.rams == ("8GB", "12GB")
    assert options.options_for(AttributeDimension.RAM) == ("8GB", "12GB")
    assert options.variant_type is VariantType.ELECTRONICS


def test_swatches_first_seen_variant_wins_and_falls_back_to_product_images() -> None:
    variants = [
        _variant("a", color="Red", images=["/red.jpg"]),
        _variant("b", color="Red", images=["/red-2.jpg"]),
        _variant("c", color="Blue"),
    ]

    options = extract_attribute_options(variants, product_images=["/product.jpg"])

    assert options.color_variant_images["Red"].variant.id == "a"
    assert options.color_variant_images["Red"].images == ("/red.jpg",)
    assert options.color_variant_images["Blue"].images == ("/product.jpg",)


def test_variant_with_null_attributes_is_excluded() -> None:
    variants = [
        Variant.model_validate({"_id": "broken", "attributes": None, "active": True}),
        _variant("ok", color="Red", size="S"),
    ]

    options = extract_attribute_options(variants)

    assert options.colors == ("Red",)
    assert options.sizes == ("S",)
    assert set(options.color_variant_images) == {"Red"}


def test_detect_variant_type_uses_first_variant() -> None:
    assert detect_variant_type([]) is VariantType.SIMPLE
    assert detect_variant_type([_variant("a", color="Red", size="M")]) is VariantType.CLOTHING
    assert detect_variant_type([_variant("a", color="Red")]) is VariantType.COLOR_ONLY
    assert detect_variant_type([_variant("a", ram="8GB")]) is VariantType.ELECTRONICS
    assert detect_variant_type([_variant("a")]) is VariantType.SIMPLE
