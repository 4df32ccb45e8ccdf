"""Derive per-dimension option lists from a product's variants."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.types import (
    AttributeDimension,
    AttributeOptions,
    ColorSwatch,
    Variant,
    VariantType,
)
from utils.helpers import dedupe_preserving_order, parse_integer_token

logger = logging.getLogger(__name__)

SIZE_RANK: Tuple[str, ...] = (
    "XXS", "XS", "S", "M", "L", "XL", "XXL", "XXXL", "2XL", "3XL", "4XL", "5XL",
)
_SIZE_RANK_INDEX: Dict[str, int] = {size: index for index, size in enumerate(SIZE_RANK)}


def size_sort_key(token: str) -> Tuple[int, int, str]:
    """Ranked letter sizes first, then integers, then everything else lexically."""
    rank = _SIZE_RANK_INDEX.get(token.upper())
    if rank is not None:
        return (0, rank, token)
    number = parse_integer_token(token)
    if number is not None:
        return (1, number, token)
    return (2, 0, token)


def sort_sizes(sizes: Iterable[str]) -> List[str]:
    return sorted(sizes, key=size_sort_key)


def _distinct_values(variants: Sequence[Variant], dimension: AttributeDimension) -> Tuple[str, ...]:
    values = [v.attribute(dimension) for v in variants if v.attribute(dimension)]
    return tuple(dedupe_preserving_order(values))


def detect_variant_type(variants: Sequence[Variant]) -> VariantType:
    """Classify the product by its first variant's attribute set."""
    if not variants:
        return VariantType.SIMPLE
    first = variants[0]
    if first.storage or first.ram:
        return VariantType.ELECTRONICS
    if first.size:
        return VariantType.CLOTHING
    if first.color:
        return VariantType.COLOR_ONLY
    return VariantType.SIMPLE


def extract_attribute_options(
    variants: Sequence[Variant],
    product_images: Optional[Sequence[str]] = None,
) -> AttributeOptions:
    """Build the option set for every dimension from the active variants.

    Pure function of its inputs. Variants whose attribute map was missing
    arrive here with an empty map and so contribute nothing.
    """
    active = [v for v in variants if v.active]
    fallback_images = tuple(product_images or ())

    sizes: List[str] = []
    for variant in active:
        sizes.extend(variant.size_options)

    swatches: Dict[str, ColorSwatch] = {}
    sizes_by_color: Dict[str, Tuple[str, ...]] = {}
    for variant in active:
        color = variant.color
        if not color or color in swatches:
            continue
        images = tuple(variant.images) if variant.images else fallback_images
        swatches[color] = ColorSwatch(color=color, variant=variant, images=images)
        sizes_by_color[color] = variant.size_options

    options = AttributeOptions(
        colors=_distinct_values(active, AttributeDimension.COLOR),
        sizes=tuple(sort_sizes(dedupe_preserving_order(sizes))),
        storages=_distinct_values(active, AttributeDimension.STORAGE),
        rams=_distinct_values(active, AttributeDimension.RAM),
        color_variant_images=swatches,
        variant_type=detect_variant_type(variants),
        sizes_by_color=sizes_by_color,
    )
    logger.debug(
        "Extracted options: %d colors, %d sizes, %d storages, %d rams",
        len(options.colors),
        len(options.sizes),
        len(options.storages),
        len(options.rams),
    )
    return options
