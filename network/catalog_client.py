"""
Async client for the product catalog service.

Only one endpoint matters to the variant engine:
``GET /products/slug/{slug}[?variantId={id}]`` which answers with
``{"success": bool, "data": Product}``. When ``variantId`` is given the
service merges that variant's price, images, title and short description
into the product-level fields and adds a ``selectedVariant`` object.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Optional
from urllib.parse import quote

import httpx

from core.types import Product
from parsers.product_parser import parse_catalog_response
from utils.config_loader import load_settings
from utils.error_handling import CatalogError


RESPONSE_TIME_WINDOW = 500


@dataclass
class FetchMetrics:
    """Metrics for tracking catalog requests; only the latest response times are kept"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    response_times: Deque[float] = field(default_factory=lambda: deque(maxlen=RESPONSE_TIME_WINDOW))

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    @property
    def avg_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)


class CatalogClient:
    """httpx wrapper around the catalog product-by-slug endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.config = config if config is not None else load_settings().get("catalog_client", {})
        self.logger = logging.getLogger(__name__)

        self.base_url = str(base_url or self.config.get("base_url") or "").rstrip("/")
        if not self.base_url:
            raise CatalogError("Catalog base URL is not configured")
        self.timeout = float(timeout if timeout is not None else self.config.get("timeout_seconds", 10.0))

        request_headers = {"Accept": "application/json"}
        request_headers.update(self.config.get("headers") or {})
        request_headers.update(headers or {})

        self.metrics = FetchMetrics()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers=request_headers,
            transport=transport,
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def product_path(slug: str) -> str:
        return f"/products/slug/{quote(slug, safe='')}"

    async def fetch_product(self, slug: str, variant_id: Optional[str] = None) -> Product:
        """Fetch a product, merged for ``variant_id`` when given.

        Raises:
            CatalogError: network failure, non-2xx status, undecodable body,
                ``success: false`` or a payload that fails validation.
        """
        if not slug:
            raise CatalogError("Product slug is required")

        params = {"variantId": variant_id} if variant_id else None
        context = {"slug": slug, "variant_id": variant_id}

        self.metrics.total_requests += 1
        started = time.perf_counter()
        try:
            response = await self._client.get(self.product_path(slug), params=params)
        except httpx.HTTPError as exc:
            self.metrics.failed_requests += 1
            self.logger.warning("Catalog request failed for %s (variant %s): %s", slug, variant_id, exc)
            raise CatalogError(f"Catalog request failed: {exc}", context) from exc
        finally:
            self.metrics.response_times.append(time.perf_counter() - started)

        if not response.is_success:
            self.metrics.failed_requests += 1
            self.logger.warning(
                "Catalog responded %s for %s (variant %s)", response.status_code, slug, variant_id
            )
            raise CatalogError(
                f"Catalog responded with HTTP {response.status_code}",
                context,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            self.metrics.failed_requests += 1
            raise CatalogError("Catalog response is not valid JSON", context) from exc

        try:
            product = parse_catalog_response(body)
        except CatalogError as exc:
            self.metrics.failed_requests += 1
            exc.context.update(context)
            self.logger.warning("Unusable catalog response for %s: %s", slug, exc)
            raise

        self.metrics.successful_requests += 1
        self.logger.debug(
            "Fetched %s (variant %s): %d variants", slug, variant_id, len(product.variants)
        )
        return product
