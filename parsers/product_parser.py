from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from core.types import Product
from utils.error_handling import (
    CatalogError,
    ErrorContext,
    MalformedVariant,
    error_reporter,
)

logger = logging.getLogger(__name__)


def _report_malformed(message: str, *, slug: Optional[str], variant_id: Optional[str], data: Any) -> None:
    logger.warning("%s (product=%s, variant=%s)", message, slug, variant_id)
    error_reporter.report_error(
        MalformedVariant(message),
        ErrorContext(
            product_slug=slug,
            variant_id=variant_id,
            operation="parse_product",
            additional_data={"value": repr(data)[:200]},
        ),
    )


def _normalize_variant(raw: Mapping[str, Any], slug: Optional[str]) -> Dict[str, Any]:
    variant = dict(raw)
    variant_id = variant.get("_id", variant.get("id"))
    attributes = variant.get("attributes")

    if not isinstance(attributes, Mapping):
        _report_malformed(
            "Variant has no attribute map; treating as empty",
            slug=slug,
            variant_id=variant_id,
            data=attributes,
        )
        variant["attributes"] = {}
        return variant

    cleaned: Dict[str, Any] = {}
    for key, value in attributes.items():
        if isinstance(value, (dict, list, tuple)) and key != "size":
            _report_malformed(
                f"Attribute '{key}' is not a scalar; dropping it",
                slug=slug,
                variant_id=variant_id,
                data=value,
            )
            continue
        cleaned[key] = value
    variant["attributes"] = cleaned
    return variant


def _normalize_variants(raw_variants: Any, slug: Optional[str]) -> List[Dict[str, Any]]:
    if raw_variants is None:
        return []
    if not isinstance(raw_variants, list):
        _report_malformed("Variant list is not an array; ignoring it", slug=slug, variant_id=None, data=raw_variants)
        return []

    variants: List[Dict[str, Any]] = []
    for entry in raw_variants:
        if not isinstance(entry, Mapping):
            _report_malformed("Variant entry is not an object; skipping", slug=slug, variant_id=None, data=entry)
            continue
        variants.append(_normalize_variant(entry, slug))
    return variants


def parse_product(data: Mapping[str, Any]) -> Product:
    """Validate a catalog product payload into a Product.

    Malformed variant records are repaired (and reported) rather than
    rejected; a payload that is not an object at all is a CatalogError.
    """
    if not isinstance(data, Mapping):
        raise CatalogError("Product payload is not an object", {"type": type(data).__name__})

    payload = dict(data)
    slug = payload.get("slug")
    payload["variants"] = _normalize_variants(payload.get("variants"), slug)

    selected = payload.get("selectedVariant", payload.get("selected_variant"))
    if isinstance(selected, Mapping):
        payload.pop("selected_variant", None)
        payload["selectedVariant"] = _normalize_variant(selected, slug)
    elif selected is not None:
        payload.pop("selected_variant", None)
        payload["selectedVariant"] = None

    try:
        return Product.model_validate(payload)
    except ValidationError as exc:
        raise CatalogError(
            "Product payload failed validation",
            {"slug": slug, "errors": exc.errors(include_url=False)},
        ) from exc


def parse_catalog_response(body: Any) -> Product:
    """Unwrap the ``{success, data}`` envelope of the catalog service."""
    if not isinstance(body, Mapping):
        raise CatalogError("Catalog response is not an object")

    if not body.get("success"):
        message = body.get("message") or "Catalog reported failure"
        raise CatalogError(str(message), {"success": body.get("success")})

    data = body.get("data")
    if data is None:
        raise CatalogError("Catalog response has no product data")

    return parse_product(data)
