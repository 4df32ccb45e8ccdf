"""Map a (possibly partial) attribute selection to a single active variant."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from core.types import Variant

logger = logging.getLogger(__name__)


class NotFoundVariant:
    """Sentinel for "no active variant matches"; falsy so callers can test it."""

    _instance: Optional["NotFoundVariant"] = None

    def __new__(cls) -> "NotFoundVariant":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFoundVariant()

Resolution = Union[Variant, NotFoundVariant]


def matches(
    variant: Variant,
    color: Optional[str] = None,
    size: Optional[str] = None,
    storage: Optional[str] = None,
    ram: Optional[str] = None,
) -> bool:
    """Empty inputs are wildcards; ``size`` matches any token of the variant's size field."""
    if not variant.active:
        return False
    if color and variant.color != color:
        return False
    if size and size not in variant.size_options:
        return False
    if storage and variant.storage != storage:
        return False
    if ram and variant.ram != ram:
        return False
    return True


def resolve(
    variants: Sequence[Variant],
    color: Optional[str] = None,
    size: Optional[str] = None,
    storage: Optional[str] = None,
    ram: Optional[str] = None,
) -> Resolution:
    """Return the first matching active variant in list order, or NOT_FOUND."""
    for variant in variants:
        if matches(variant, color, size, storage, ram):
            return variant
    logger.debug(
        "No active variant for color=%r size=%r storage=%r ram=%r", color, size, storage, ram
    )
    return NOT_FOUND


def find_by_color(variants: Sequence[Variant], color: str) -> Resolution:
    """First active variant with exactly this color, other dimensions ignored."""
    if not color:
        return NOT_FOUND
    return resolve(variants, color=color)


def is_size_available(variants: Sequence[Variant], size: str, selected_color: Optional[str]) -> bool:
    """Optimistic with no color selected, conservative when the color has no variant."""
    if not selected_color:
        return True
    color_variant = find_by_color(variants, selected_color)
    if not color_variant:
        return False
    return size in color_variant.size_options
