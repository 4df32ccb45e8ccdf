"""
Variant selection engine for one product view.

Wires the variant store, the selection state machine and the refresh
coordinator together and exposes the operations a storefront page needs:
attribute options, attribute changes, the resolved variant, display
images, the effective price and the purchase helpers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core.attribute_extractor import extract_attribute_options
from core.refresh_coordinator import RefreshCoordinator
from core.selection_state import SelectionMachine
from core.types import (
    AttributeDimension,
    AttributeOptions,
    CartLine,
    EffectivePrice,
    EngineState,
    Product,
    ProductFetcher,
    Selection,
    StockStatus,
    UpdateCause,
    Variant,
)
from core.variant_resolver import NOT_FOUND, Resolution, find_by_color, resolve
from core.variant_resolver import is_size_available as _is_size_available
from core.variant_store import VariantStore
from utils.config_loader import load_settings
from utils.error_handling import CatalogError, VariantEngineError
from utils.helpers import round_half_up

DEFAULT_LOW_STOCK_THRESHOLD = 5
DEFAULT_MAX_QUANTITY_WITHOUT_STOCK = 999


class VariantSelectionEngine:
    """Selection engine bound to a single product slug.

    All calls are expected on one event loop. Attribute changes that need
    the catalog (color, storage, ram) await a refresh; a size change is
    resolved locally and returns immediately.
    """

    def __init__(
        self,
        fetcher: ProductFetcher,
        slug: Optional[str] = None,
        *,
        low_stock_threshold: Optional[int] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.logger = logging.getLogger(__name__)
        settings = config if config is not None else load_settings().get("variant_engine", {})

        self._fetcher = fetcher
        self._slug = slug
        self._low_stock_threshold = low_stock_threshold
        self._default_low_stock_threshold = int(
            settings.get("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD)
        )
        self._max_quantity_without_stock = int(
            settings.get("max_quantity_without_stock", DEFAULT_MAX_QUANTITY_WITHOUT_STOCK)
        )

        self._machine = SelectionMachine()
        self._store: Optional[VariantStore] = None
        self._options: Optional[AttributeOptions] = None
        self._coordinator = RefreshCoordinator(fetcher, self._machine, self._replace_store)

    def __repr__(self) -> str:
        return f"VariantSelectionEngine(slug={self._slug!r}, state={self._machine.state.value})"

    # ---------------------------------------------------------------- loading

    async def load(self, slug: Optional[str] = None, variant_id: Optional[str] = None) -> Product:
        """Fetch the product and default the selection.

        Raises:
            CatalogError: the product could not be fetched.
        """
        slug = slug or self._slug
        if not slug:
            raise CatalogError("A product slug is required to load the engine")
        self._slug = slug

        product = await self._fetcher.fetch_product(slug, variant_id=variant_id)
        self._replace_store(VariantStore(product))
        self._coordinator.mark_applied(variant_id)
        self._machine.initialize(self._store, variant_id)
        self.logger.info(
            "Loaded %s with %d variants (%d active)",
            slug,
            len(self._store),
            len(self._store.active_variants),
        )
        return product

    def _replace_store(self, store: VariantStore) -> None:
        self._store = store
        self._options = None

    def _require_store(self) -> VariantStore:
        if self._store is None:
            raise VariantEngineError(
                "Engine used before load()", {"slug": self._slug, "operation": "require_store"}
            )
        return self._store

    # ------------------------------------------------------------------ state

    @property
    def slug(self) -> Optional[str]:
        return self._slug

    @property
    def state(self) -> EngineState:
        return self._machine.state

    @property
    def last_cause(self) -> Optional[UpdateCause]:
        return self._machine.last_cause

    @property
    def product(self) -> Product:
        return self._require_store().product

    @property
    def store(self) -> VariantStore:
        return self._require_store()

    def get_attribute_options(self) -> AttributeOptions:
        store = self._require_store()
        if self._options is None:
            self._options = extract_attribute_options(store.variants, store.product.images)
        return self._options

    def get_selection(self) -> Selection:
        return self._machine.selection

    def get_resolved_variant(self) -> Optional[Variant]:
        return self._machine.variant

    # ------------------------------------------------------- attribute changes

    async def set_attribute(self, dimension: AttributeDimension, value: str) -> Resolution:
        """Dispatch a change for any dimension."""
        dimension = AttributeDimension(dimension)
        if dimension is AttributeDimension.SIZE:
            return self.set_size(value)
        if dimension is AttributeDimension.COLOR:
            return await self.set_color(value)
        return await self._change_and_refresh(dimension, value)

    async def set_color(self, color: str) -> Resolution:
        """Jump to the first active variant of ``color`` and refresh from the catalog.

        Raises:
            RefreshFailed: the refresh for the chosen variant failed.
        """
        store = self._require_store()
        variant = find_by_color(store.active_variants, color)
        if not variant:
            self.logger.warning("No active variant with color %r for %s", color, self._slug)
            return NOT_FOUND
        self._machine.begin_user_change(AttributeDimension.COLOR)
        await self._coordinator.refresh(self._slug, variant.id)
        return self._machine.variant or NOT_FOUND

    def set_size(self, size: str) -> Resolution:
        """Record ``size`` and resolve it against the current color, without a refresh.

        When nothing matches, the size is still recorded and the previously
        resolved variant stays in place.
        """
        store = self._require_store()
        current = self._machine.selection
        variant = resolve(store.active_variants, color=current.color, size=size)
        if not variant:
            self.logger.info("Size %r has no variant for color %r", size, current.color)
            self._machine.commit_user_change(
                current.with_value(AttributeDimension.SIZE, size), self._machine.variant
            )
            return NOT_FOUND
        self._machine.commit_user_change(Selection.from_variant(variant, size=size), variant)
        return variant

    async def set_storage(self, storage: str) -> Resolution:
        return await self._change_and_refresh(AttributeDimension.STORAGE, storage)

    async def set_ram(self, ram: str) -> Resolution:
        return await self._change_and_refresh(AttributeDimension.RAM, ram)

    async def _change_and_refresh(self, dimension: AttributeDimension, value: str) -> Resolution:
        store = self._require_store()
        candidate = self._machine.selection.with_value(dimension, value)
        variant = resolve(
            store.active_variants,
            color=candidate.color,
            size=candidate.size,
            storage=candidate.storage,
            ram=candidate.ram,
        )
        if not variant:
            self.logger.info("No active variant for %s; %s=%r ignored", candidate.as_dict(), dimension.value, value)
            return NOT_FOUND
        self._machine.begin_user_change(dimension)
        await self._coordinator.refresh(self._slug, variant.id)
        return self._machine.variant or NOT_FOUND

    def is_size_available(self, size: str) -> bool:
        store = self._require_store()
        return _is_size_available(store.variants, size, self._machine.selection.color)

    # ----------------------------------------------------------------- images

    def preview_color(self, variant: Optional[Variant]) -> None:
        """Show ``variant``'s images without changing the selection; ``None`` ends it."""
        if variant is None:
            self._machine.end_preview()
        else:
            self._machine.start_preview(variant)

    def get_display_images(self) -> List[str]:
        preview = self._machine.preview
        if preview is not None and preview.images:
            return list(preview.images)
        if self._store is None:
            return []
        if self._store.product.images:
            return list(self._store.product.images)
        variant = self._machine.variant
        if variant is not None and variant.images:
            return list(variant.images)
        return []

    def get_image_index(self) -> int:
        return self._machine.image_index(len(self.get_display_images()))

    def select_image(self, index: int) -> int:
        self._machine.select_image(index)
        return self.get_image_index()

    # ------------------------------------------------------------------ price

    def get_effective_price(self) -> EffectivePrice:
        """Reconcile price, sale price and MRP from the merged product fields."""
        if self._store is None:
            return EffectivePrice(price=0.0, sale_price=0.0, mrp=0.0)
        product = self._store.product
        mrp = product.mrp or product.price or 0.0
        sale = product.sale_price or product.price or 0.0

        if mrp > sale:
            return EffectivePrice(
                price=mrp,
                sale_price=sale,
                mrp=mrp,
                discount_amount=round(mrp - sale, 2),
                discount_percent=round_half_up((mrp - sale) / mrp * 100),
            )
        return EffectivePrice(price=product.price or 0.0, sale_price=sale, mrp=mrp)

    # --------------------------------------------------------------- purchase

    @property
    def low_stock_threshold(self) -> int:
        if self._low_stock_threshold is not None:
            return self._low_stock_threshold
        if self._store is not None and self._store.product.low_stock_threshold is not None:
            return self._store.product.low_stock_threshold
        return self._default_low_stock_threshold

    def can_add_to_cart(self) -> bool:
        variant = self._machine.variant
        return variant is not None and variant.is_purchasable

    def get_stock_status(self) -> StockStatus:
        variant = self._machine.variant
        if variant is None or variant.stock <= 0:
            return StockStatus.OUT_OF_STOCK
        if variant.stock <= self.low_stock_threshold:
            return StockStatus.LIMITED_STOCK
        return StockStatus.IN_STOCK

    def clamp_quantity(self, quantity: int) -> int:
        variant = self._machine.variant
        ceiling = variant.stock if variant is not None and variant.stock > 0 else self._max_quantity_without_stock
        return max(1, min(ceiling, int(quantity)))

    def build_cart_line(self, quantity: int = 1) -> CartLine:
        """Describe the resolved variant as a cart line.

        Raises:
            VariantEngineError: nothing purchasable is selected.
        """
        store = self._require_store()
        variant = self._machine.variant
        if variant is None or not self.can_add_to_cart():
            raise VariantEngineError(
                "Selected variant cannot be added to the cart",
                {"slug": self._slug, "variant_id": variant.id if variant else None},
            )

        product = store.product
        selection = self._machine.selection
        line_id = f"{product.id}_{variant.sku or 'default'}"
        if selection.size:
            line_id = f"{line_id}_{selection.size}"

        details = [value for value in (selection.size, variant.storage, variant.ram) if value]
        name = variant.title or product.title
        if details:
            name = f"{name} ({', '.join(details)})"

        price = self.get_effective_price()
        images = self.get_display_images()
        attributes = {
            key: value or variant.attributes.get(key, "")
            for key, value in selection.as_dict().items()
        }
        attributes = {key: value for key, value in attributes.items() if value}

        return CartLine(
            line_id=line_id,
            product_id=product.id,
            variant_id=variant.id,
            sku=variant.sku or product.sku,
            slug=product.slug or self._slug or "",
            name=name,
            price=price.mrp,
            unit_price=price.sale_price,
            discount_percent=price.discount_percent,
            image_url=images[0] if images else "",
            quantity=self.clamp_quantity(quantity),
            variant_attributes=attributes,
        )

    # ---------------------------------------------------------------- display

    def get_display_title(self) -> str:
        store = self._require_store()
        variant = self._machine.variant
        return (variant.title if variant is not None and variant.title else None) or store.product.title

    def get_display_short_description(self) -> str:
        product = self._require_store().product
        return product.short_description or self.get_display_title()

    def get_canonical_path(self) -> str:
        store = self._require_store()
        slug = store.product.slug or self._slug
        variant = self._machine.variant
        if variant is None or not variant.id:
            return f"/products/{slug}"
        return f"/products/{slug}?variantId={variant.id}"
