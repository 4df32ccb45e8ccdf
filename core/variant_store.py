"""Immutable-per-fetch view over one product's variants."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from core.types import Product, Variant

logger = logging.getLogger(__name__)


def _describes(projection: Variant, variant: Variant) -> bool:
    if projection.id:
        return projection.id == variant.id
    if projection.sku and variant.sku:
        return projection.sku == variant.sku
    return bool(projection.attributes) and projection.attributes == variant.attributes


def _with_projected_stock(variant: Variant, projection: Variant) -> Variant:
    """The projection's stock is the fresher figure when the catalog sent one."""
    if "stock" not in projection.model_fields_set or projection.stock == variant.stock:
        return variant
    return variant.model_copy(update={"stock": projection.stock})


class VariantStore:
    """Variants of one product fetch plus the merged product-level fields.

    A refresh never mutates a store; it replaces it with a new one built from
    the response.
    """

    def __init__(self, product: Product):
        self._product = product
        self._variants: Tuple[Variant, ...] = tuple(product.variants)
        self._active: Tuple[Variant, ...] = tuple(v for v in self._variants if v.active)

    def __len__(self) -> int:
        return len(self._variants)

    def __repr__(self) -> str:
        return f"VariantStore(slug={self._product.slug!r}, variants={len(self._variants)}, active={len(self._active)})"

    @property
    def product(self) -> Product:
        return self._product

    @property
    def variants(self) -> Tuple[Variant, ...]:
        return self._variants

    @property
    def active_variants(self) -> Tuple[Variant, ...]:
        return self._active

    @property
    def selected_variant(self) -> Optional[Variant]:
        """Server-designated variant, resolved to the store's own record when possible.

        The catalog may send the projection without an id (attributes, stock
        and sku only); it is then matched by sku, then by attributes. The
        projection itself is returned only when no stored record matches.
        """
        projection = self._product.selected_variant
        if projection is None:
            return None
        stored = self.find(projection.id) if projection.id else self._match_projection(projection)
        if stored is None:
            logger.warning(
                "Selected variant (id=%r, sku=%r) of %s matches no stored variant",
                projection.id,
                projection.sku,
                self._product.slug,
            )
            return projection
        return _with_projected_stock(stored, projection)

    def resolve(self, variant_id: Optional[str]) -> Optional[Variant]:
        """Record for ``variant_id``, carrying the projection's stock when it describes that record.

        Falls back to ``selected_variant`` when the id is unknown to this store.
        """
        stored = self.find(variant_id)
        if stored is None:
            return self.selected_variant
        projection = self._product.selected_variant
        if projection is not None and _describes(projection, stored):
            return _with_projected_stock(stored, projection)
        return stored

    def _match_projection(self, projection: Variant) -> Optional[Variant]:
        if projection.sku:
            for variant in self._variants:
                if variant.sku == projection.sku:
                    return variant
        if projection.attributes:
            for pool in (self._active, self._variants):
                for variant in pool:
                    if variant.attributes == projection.attributes:
                        return variant
        return None

    def find(self, variant_id: Optional[str]) -> Optional[Variant]:
        if not variant_id:
            return None
        for variant in self._variants:
            if variant.id == variant_id:
                return variant
        return None

    def first_active(self) -> Optional[Variant]:
        return self._active[0] if self._active else None
