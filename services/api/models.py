"""Pydantic models for API request/response schemas."""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict

from core.types import AttributeDimension, StockStatus, VariantType, Variant
from core.variant_engine import VariantSelectionEngine


NOTICE_VARIANT_NOT_FOUND = "variant_not_found"


class CreateSelectionRequest(BaseModel):
    """
    Request to open a selection session for a product.

    variant_id preselects a variant, as when the page is opened through a
    ?variantId= link.
    """
    slug: str = Field(..., min_length=1, description="Product slug")
    variant_id: Optional[str] = Field(default=None, description="Variant to open the product with")

    model_config = {
        "json_schema_extra": {
            "example": {"slug": "classic-tee", "variant_id": "v-blue"}
        }
    }


class AttributeChangeRequest(BaseModel):
    """Change one attribute dimension of the selection."""
    dimension: AttributeDimension = Field(..., description="color, size, storage or ram")
    value: str = Field(..., description="Option value picked by the shopper")


class PreviewRequest(BaseModel):
    """Hover preview of a colour; null ends the preview."""
    color: Optional[str] = Field(default=None, description="Colour being hovered")


class ImageSelectRequest(BaseModel):
    index: int = Field(..., ge=0, description="Index into the displayed images")


class VariantResponse(BaseModel):
    id: str
    sku: str
    title: Optional[str] = None
    attributes: Dict[str, str] = Field(default_factory=dict)
    size_options: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    price: float = 0.0
    sale_price: Optional[float] = None
    mrp: Optional[float] = None
    stock: int = 0
    active: bool = False

    @classmethod
    def from_variant(cls, variant: Variant) -> "VariantResponse":
        return cls(
            id=variant.id,
            sku=variant.sku,
            title=variant.title,
            attributes=dict(variant.attributes),
            size_options=list(variant.size_options),
            images=list(variant.images),
            price=variant.price,
            sale_price=variant.sale_price,
            mrp=variant.mrp,
            stock=variant.stock,
            active=variant.active,
        )


class SwatchResponse(BaseModel):
    color: str
    variant_id: str
    images: List[str] = Field(default_factory=list)


class OptionsResponse(BaseModel):
    """Option lists per dimension, sizes narrowed to the selected colour."""
    variant_type: VariantType
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    sizes_for_color: List[str] = Field(default_factory=list)
    storages: List[str] = Field(default_factory=list)
    rams: List[str] = Field(default_factory=list)
    swatches: List[SwatchResponse] = Field(default_factory=list)


class PriceResponse(BaseModel):
    price: float
    sale_price: float
    mrp: float
    discount_amount: float = 0.0
    discount_percent: int = 0


class SelectionResponse(BaseModel):
    """
    Everything a product page renders for the current selection.

    notice is set to "variant_not_found" when the last attribute change had
    no matching active variant and the selection was left unchanged.
    """
    session_id: str = Field(..., description="Selection session id")
    slug: str
    state: str
    selection: Dict[str, str]
    variant: Optional[VariantResponse] = None
    options: OptionsResponse
    images: List[str] = Field(default_factory=list)
    image_index: int = 0
    price: PriceResponse
    stock_status: StockStatus
    can_add_to_cart: bool
    title: str
    short_description: str
    canonical_path: str
    notice: Optional[str] = None

    @classmethod
    def from_engine(
        cls,
        session_id: str,
        engine: VariantSelectionEngine,
        notice: Optional[str] = None,
    ) -> "SelectionResponse":
        selection = engine.get_selection()
        options = engine.get_attribute_options()
        variant = engine.get_resolved_variant()
        price = engine.get_effective_price()

        return cls(
            session_id=session_id,
            slug=engine.slug or "",
            state=engine.state.value,
            selection=selection.as_dict(),
            variant=VariantResponse.from_variant(variant) if variant is not None else None,
            options=OptionsResponse(
                variant_type=options.variant_type,
                colors=list(options.colors),
                sizes=list(options.sizes),
                sizes_for_color=options.sizes_for_color(selection.color),
                storages=list(options.storages),
                rams=list(options.rams),
                swatches=[
                    SwatchResponse(color=color, variant_id=swatch.variant.id, images=list(swatch.images))
                    for color, swatch in options.color_variant_images.items()
                ],
            ),
            images=engine.get_display_images(),
            image_index=engine.get_image_index(),
            price=PriceResponse(
                price=price.price,
                sale_price=price.sale_price,
                mrp=price.mrp,
                discount_amount=price.discount_amount,
                discount_percent=price.discount_percent,
            ),
            stock_status=engine.get_stock_status(),
            can_add_to_cart=engine.can_add_to_cart(),
            title=engine.get_display_title(),
            short_description=engine.get_display_short_description(),
            canonical_path=engine.get_canonical_path(),
            notice=notice,
        )
