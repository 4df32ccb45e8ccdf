"""Catalog payload builders and an in-memory product fetcher for tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.types import Product
from parsers.product_parser import parse_product
from utils.error_handling import CatalogError


def variant_payload(
    variant_id: str,
    *,
    color: Optional[str] = None,
    size: Optional[str] = None,
    storage: Optional[str] = None,
    ram: Optional[str] = None,
    stock: int = 10,
    active: bool = True,
    price: float = 1000.0,
    sale_price: Optional[float] = None,
    mrp: Optional[float] = None,
    images: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> Dict[str, Any]:
    attributes = {
        key: value
        for key, value in (("color", color), ("size", size), ("storage", storage), ("ram", ram))
        if value is not None
    }
    return {
        "_id": variant_id,
        "sku": f"SKU-{variant_id}",
        "title": title,
        "attributes": attributes,
        "price": price,
        "salePrice": sale_price,
        "mrp": mrp,
        "stock": stock,
        "active": active,
        "images": images if images is not None else [f"/img/{variant_id}-1.jpg", f"/img/{variant_id}-2.jpg"],
    }


def product_payload(
    variants: List[Dict[str, Any]],
    *,
    selected_id: Optional[str] = None,
    slug: str = "classic-tee",
    bare_selected: bool = False,
    **overrides: Any,
) -> Dict[str, Any]:
    """Product as the catalog returns it, merged for ``selected_id`` when given.

    With ``bare_selected`` the selectedVariant carries only attributes, stock
    and sku, without an id.
    """
    payload: Dict[str, Any] = {
        "_id": "p-1",
        "slug": slug,
        "title": "Classic Tee",
        "shortDescription": "Soft cotton tee",
        "sku": "TEE",
        "price": 1000.0,
        "salePrice": 800.0,
        "mrp": 1000.0,
        "images": ["/img/product-1.jpg", "/img/product-2.jpg", "/img/product-3.jpg"],
        "variants": variants,
    }
    payload.update(overrides)

    if selected_id is not None:
        selected = next(v for v in variants if isinstance(v, dict) and v.get("_id") == selected_id)
        payload["price"] = selected["price"]
        payload["salePrice"] = selected.get("salePrice") or selected["price"]
        payload["mrp"] = selected.get("mrp") or selected["price"]
        payload["images"] = selected["images"] or payload["images"]
        if selected.get("title"):
            payload["title"] = selected["title"]
        if bare_selected:
            payload["selectedVariant"] = {
                "attributes": selected["attributes"],
                "stock": selected["stock"],
                "sku": selected["sku"],
            }
        else:
            payload["selectedVariant"] = {
                "_id": selected["_id"],
                "sku": selected["sku"],
                "attributes": selected["attributes"],
                "stock": selected["stock"],
                "active": selected["active"],
                "images": selected["images"],
                "price": selected["price"],
            }
    return payload


class FakeFetcher:
    """ProductFetcher backed by payload builders, with per-variant gates and failures."""

    def __init__(self, build: Callable[[Optional[str]], Dict[str, Any]]):
        self._build = build
        self.calls: List[Tuple[str, Optional[str]]] = []
        self._gates: Dict[Optional[str], asyncio.Event] = {}
        self._failures: Dict[Optional[str], CatalogError] = {}

    def hold(self, variant_id: Optional[str]) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[variant_id] = gate
        return gate

    def fail(self, variant_id: Optional[str], error: Optional[CatalogError] = None) -> None:
        self._failures[variant_id] = error or CatalogError("Catalog responded with HTTP 503", status_code=503)

    def recover(self, variant_id: Optional[str]) -> None:
        self._failures.pop(variant_id, None)

    async def fetch_product(self, slug: str, variant_id: Optional[str] = None) -> Product:
        self.calls.append((slug, variant_id))
        gate = self._gates.pop(variant_id, None)
        if gate is not None:
            await gate.wait()
        if variant_id in self._failures:
            raise self._failures[variant_id]
        return parse_product(self._build(variant_id))


def make_fetcher(variants: List[Dict[str, Any]], **product_fields: Any) -> FakeFetcher:
    return FakeFetcher(lambda variant_id: product_payload(variants, selected_id=variant_id, **product_fields))
