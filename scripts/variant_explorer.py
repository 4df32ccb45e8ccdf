#!/usr/bin/env python3
"""Load a product from the catalog service, apply selections and print the result."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from rich.panel import Panel
from rich.text import Text

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.types import AttributeDimension  # noqa: E402
from core.variant_engine import VariantSelectionEngine  # noqa: E402
from network.catalog_client import CatalogClient  # noqa: E402
from utils.error_handling import CatalogError, RefreshFailed  # noqa: E402
from utils.rich_helpers import (  # noqa: E402
    build_table,
    format_stock_status,
    get_console,
    render_error,
)

console = get_console()


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Explore the variants of a catalog product")
    parser.add_argument("slug", help="Product slug")
    parser.add_argument("--variant-id", default=None, help="Open the product with this variant")
    parser.add_argument("--color", default=None, help="Colour to select")
    parser.add_argument("--size", default=None, help="Size to select")
    parser.add_argument("--storage", default=None, help="Storage to select")
    parser.add_argument("--ram", default=None, help="RAM to select")
    parser.add_argument("--base-url", default=None, help="Catalog service base URL (overrides settings)")
    return parser.parse_args(argv)


def _requested_changes(args: argparse.Namespace) -> List[Tuple[AttributeDimension, str]]:
    changes = [
        (AttributeDimension.COLOR, args.color),
        (AttributeDimension.STORAGE, args.storage),
        (AttributeDimension.RAM, args.ram),
        (AttributeDimension.SIZE, args.size),
    ]
    return [(dimension, value) for dimension, value in changes if value]


def _print_options(engine: VariantSelectionEngine) -> None:
    options = engine.get_attribute_options()
    selection = engine.get_selection()
    rows = []
    for dimension in AttributeDimension:
        values = options.options_for(dimension)
        if not values:
            continue
        if dimension is AttributeDimension.SIZE:
            available = options.sizes_for_color(selection.color)
            values = [value if value in available else f"({value})" for value in values]
        rows.append((dimension.value, list(values), selection.get(dimension)))

    console.print(
        build_table(
            [("Dimension", {"style": "accent"}), ("Options", {}), ("Selected", {"style": "success"})],
            rows,
            title=f"{engine.get_display_title()} [{options.variant_type.value}]",
        )
    )


def _print_selection(engine: VariantSelectionEngine) -> None:
    variant = engine.get_resolved_variant()
    price = engine.get_effective_price()
    images = engine.get_display_images()

    rows = [
        ("Variant", variant.id if variant else None),
        ("SKU", variant.sku if variant else None),
        ("Price", price.price),
        ("Sale price", price.sale_price),
        ("Discount", f"{price.discount_percent}%" if price.has_discount else None),
        ("Stock", variant.stock if variant else None),
        ("Status", format_stock_status(engine.get_stock_status().value)),
        ("Add to cart", engine.can_add_to_cart()),
        ("Image", images[engine.get_image_index()] if images else None),
        ("URL", engine.get_canonical_path()),
    ]
    console.print(build_table([("Field", {"style": "accent"}), ("Value", {})], rows, title="Selection"))


async def explore(args: argparse.Namespace) -> int:
    async with CatalogClient(args.base_url) as client:
        engine = VariantSelectionEngine(client, args.slug)
        try:
            await engine.load(variant_id=args.variant_id)
        except CatalogError as exc:
            render_error(f"Could not load {args.slug}", details=str(exc))
            return 1

        for dimension, value in _requested_changes(args):
            try:
                resolved = await engine.set_attribute(dimension, value)
            except RefreshFailed as exc:
                render_error(f"Refresh failed after selecting {dimension.value}={value}", details=str(exc))
                return 1
            if not resolved:
                console.print(
                    Text(f"No variant for {dimension.value}={value}; selection unchanged", style="warning")
                )

        _print_options(engine)
        _print_selection(engine)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    console.print(
        Panel(
            Text(f"{args.slug}", justify="center", style="accent"),
            title="Variant Explorer",
            border_style="accent",
        )
    )
    try:
        return asyncio.run(explore(args))
    except CatalogError as exc:
        render_error("Catalog client unavailable", details=str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
