"""
Base data types for the storefront variant engine.

Catalog records are pydantic models validated straight from the catalog
service payload; engine-side values (selection, prices, option sets) are
plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Tuple,
    runtime_checkable,
)

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict as PydanticConfigDict,
    Field,
    field_validator,
    model_validator,
)

from utils.helpers import (
    safe_float_conversion,
    safe_int_conversion,
    split_size_field,
)


# ============================================================================
# Enums
# ============================================================================


class AttributeDimension(str, Enum):
    """Axes of variation a shopper can pick."""

    COLOR = "color"
    SIZE = "size"
    STORAGE = "storage"
    RAM = "ram"


SINGULAR_DIMENSIONS: Tuple[AttributeDimension, ...] = (
    AttributeDimension.COLOR,
    AttributeDimension.STORAGE,
    AttributeDimension.RAM,
)


class UpdateCause(str, Enum):
    """Why a selection update happened."""

    INIT = "init"
    USER = "user"
    REFRESH_SETTLED = "refresh-settled"


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ATTRIBUTE_CHANGED = "attribute_changed"


class VariantType(str, Enum):
    """Shape of a product's variant matrix."""

    SIMPLE = "simple"
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    COLOR_ONLY = "color_only"


class StockStatus(str, Enum):
    """Stock states shown next to the buy buttons."""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    LIMITED_STOCK = "limited_stock"


class RefreshStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    STALE = "stale"


# ============================================================================
# Catalog records
# ============================================================================


def _coerce_attributes(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    attributes: Dict[str, str] = {}
    for key, raw in value.items():
        if key == "size" and isinstance(raw, (list, tuple)):
            raw = ",".join(split_size_field(raw))
        if raw is None or isinstance(raw, (dict, list, tuple)):
            continue
        attributes[str(key)] = raw if isinstance(raw, str) else str(raw)
    return attributes


def _coerce_images(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str) and item]


class Variant(BaseModel):
    """One purchasable attribute combination of a product."""

    model_config = PydanticConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(default="", validation_alias=AliasChoices("_id", "id"))
    sku: str = ""
    slug: Optional[str] = None
    title: Optional[str] = None
    attributes: Dict[str, str] = Field(default_factory=dict)
    size_options: Tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("size_options", "sizeOptions")
    )
    images: List[str] = Field(default_factory=list)
    price: float = 0.0
    sale_price: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("salePrice", "sale_price")
    )
    mrp: Optional[float] = None
    stock: int = 0
    active: bool = False

    @model_validator(mode="before")
    @classmethod
    def _derive_size_options(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "size_options" in data or "sizeOptions" in data:
            return data
        attributes = data.get("attributes")
        size_value = attributes.get("size") if isinstance(attributes, dict) else None
        return {**data, "size_options": split_size_field(size_value)}

    @field_validator("id", "sku", mode="before")
    @classmethod
    def _identity_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize_attributes(cls, value: Any) -> Dict[str, str]:
        return _coerce_attributes(value)

    @field_validator("images", mode="before")
    @classmethod
    def _normalize_images(cls, value: Any) -> List[str]:
        return _coerce_images(value)

    @field_validator("price", mode="before")
    @classmethod
    def _normalize_price(cls, value: Any) -> float:
        return safe_float_conversion(value) or 0.0

    @field_validator("sale_price", "mrp", mode="before")
    @classmethod
    def _normalize_optional_price(cls, value: Any) -> Optional[float]:
        return safe_float_conversion(value)

    @field_validator("stock", mode="before")
    @classmethod
    def _normalize_stock(cls, value: Any) -> int:
        return max(safe_int_conversion(value) or 0, 0)

    @field_validator("active", mode="before")
    @classmethod
    def _normalize_active(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return bool(value)

    def attribute(self, dimension: AttributeDimension | str) -> str:
        key = dimension.value if isinstance(dimension, AttributeDimension) else dimension
        return self.attributes.get(key, "")

    @property
    def color(self) -> str:
        return self.attribute(AttributeDimension.COLOR)

    @property
    def size(self) -> str:
        return self.attribute(AttributeDimension.SIZE)

    @property
    def storage(self) -> str:
        return self.attribute(AttributeDimension.STORAGE)

    @property
    def ram(self) -> str:
        return self.attribute(AttributeDimension.RAM)

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def is_purchasable(self) -> bool:
        return self.active and self.stock > 0


class Product(BaseModel):
    """Product as returned by the catalog service, merged fields included."""

    model_config = PydanticConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(default="", validation_alias=AliasChoices("_id", "id"))
    slug: str = ""
    title: str = ""
    short_description: str = Field(
        default="", validation_alias=AliasChoices("shortDescription", "short_description")
    )
    sku: Optional[str] = None
    price: float = 0.0
    sale_price: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("salePrice", "sale_price")
    )
    mrp: Optional[float] = None
    images: List[str] = Field(default_factory=list)
    variants: List[Variant] = Field(default_factory=list)
    selected_variant: Optional[Variant] = Field(
        default=None, validation_alias=AliasChoices("selectedVariant", "selected_variant")
    )
    low_stock_threshold: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("lowStockThreshold", "low_stock_threshold")
    )

    @field_validator("id", "slug", "title", "short_description", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("images", mode="before")
    @classmethod
    def _normalize_images(cls, value: Any) -> List[str]:
        return _coerce_images(value)

    @field_validator("variants", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> List[Any]:
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, (dict, Variant))]

    @field_validator("selected_variant", mode="before")
    @classmethod
    def _selected_variant_object(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, Variant)) else None

    @field_validator("price", mode="before")
    @classmethod
    def _normalize_price(cls, value: Any) -> float:
        return safe_float_conversion(value) or 0.0

    @field_validator("sale_price", "mrp", mode="before")
    @classmethod
    def _normalize_optional_price(cls, value: Any) -> Optional[float]:
        return safe_float_conversion(value)

    @field_validator("low_stock_threshold", mode="before")
    @classmethod
    def _normalize_threshold(cls, value: Any) -> Optional[int]:
        return safe_int_conversion(value)


# ============================================================================
# Engine values
# ============================================================================


@dataclass(frozen=True)
class Selection:
    """The shopper's committed answer per dimension; "" means unset."""

    color: str = ""
    size: str = ""
    storage: str = ""
    ram: str = ""

    def get(self, dimension: AttributeDimension) -> str:
        return getattr(self, dimension.value)

    def with_value(self, dimension: AttributeDimension, value: str) -> "Selection":
        return replace(self, **{dimension.value: value or ""})

    def as_dict(self) -> Dict[str, str]:
        return {
            "color": self.color,
            "size": self.size,
            "storage": self.storage,
            "ram": self.ram,
        }

    @classmethod
    def from_variant(cls, variant: Variant, size: Optional[str] = None) -> "Selection":
        return cls(
            color=variant.color,
            size=(variant.size_options[0] if variant.size_options else "") if size is None else size,
            storage=variant.storage,
            ram=variant.ram,
        )


@dataclass(frozen=True)
class ColorSwatch:
    color: str
    variant: Variant
    images: Tuple[str, ...]


@dataclass(frozen=True)
class AttributeOptions:
    """Per-dimension option lists derived from the active variants."""

    colors: Tuple[str, ...] = ()
    sizes: Tuple[str, ...] = ()
    storages: Tuple[str, ...] = ()
    rams: Tuple[str, ...] = ()
    color_variant_images: Dict[str, ColorSwatch] = field(default_factory=dict)
    variant_type: VariantType = VariantType.SIMPLE
    sizes_by_color: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def sizes_for_color(self, color: Optional[str]) -> List[str]:
        if not color:
            return list(self.sizes)
        tokens = self.sizes_by_color.get(color)
        if not tokens:
            return list(self.sizes)
        return list(tokens)

    def options_for(self, dimension: AttributeDimension) -> Tuple[str, ...]:
        return {
            AttributeDimension.COLOR: self.colors,
            AttributeDimension.SIZE: self.sizes,
            AttributeDimension.STORAGE: self.storages,
            AttributeDimension.RAM: self.rams,
        }[dimension]


@dataclass(frozen=True)
class EffectivePrice:
    """Price block reconciled from the merged product-level fields."""

    price: float
    sale_price: float
    mrp: float
    discount_amount: float = 0.0
    discount_percent: int = 0

    @property
    def has_discount(self) -> bool:
        return self.discount_amount > 0


@dataclass(frozen=True)
class CartLine:
    """Descriptor handed to the external cart when a shopper buys the selection."""

    line_id: str
    product_id: str
    variant_id: str
    sku: Optional[str]
    slug: str
    name: str
    price: float
    unit_price: float
    discount_percent: int
    image_url: str
    quantity: int
    variant_attributes: Dict[str, str] = field(default_factory=dict)


# ============================================================================
# Protocols
# ============================================================================


@runtime_checkable
class ProductFetcher(Protocol):
    """Anything that can fetch a (variant-merged) product by slug."""

    async def fetch_product(self, slug: str, variant_id: Optional[str] = None) -> Product:
        ...
