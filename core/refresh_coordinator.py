"""
Authoritative re-fetch of a product for a newly chosen variant.

Requests are tagged with a monotonic token; only the response to the most
recently issued request is merged, anything older is discarded on arrival.
A refresh for the variant that was last applied is a no-op while nothing
newer is in flight and the selection still rests on that variant.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from core.selection_state import SelectionMachine
from core.types import (
    SINGULAR_DIMENSIONS,
    AttributeDimension,
    Product,
    ProductFetcher,
    RefreshStatus,
    Selection,
    Variant,
)
from core.variant_store import VariantStore
from utils.error_handling import CatalogError, ErrorContext, RefreshFailed, error_reporter
from utils.logger import log_engine_event


@dataclass(frozen=True)
class RefreshOutcome:
    status: RefreshStatus
    variant_id: str
    token: int
    product: Optional[Product] = None

    @property
    def applied(self) -> bool:
        return self.status is RefreshStatus.APPLIED


class RefreshCoordinator:
    """Issues variant refreshes and merges the winning response."""

    def __init__(
        self,
        fetcher: ProductFetcher,
        machine: SelectionMachine,
        on_store_replaced: Callable[[VariantStore], None],
    ) -> None:
        self.logger = logging.getLogger(__name__)
        self._fetcher = fetcher
        self._machine = machine
        self._on_store_replaced = on_store_replaced
        self._tokens = itertools.count(1)
        self._latest_token = 0
        self._in_flight_token: Optional[int] = None
        self._applied_variant_id: Optional[str] = None

    @property
    def applied_variant_id(self) -> Optional[str]:
        return self._applied_variant_id

    @property
    def in_flight(self) -> bool:
        return self._in_flight_token is not None

    def mark_applied(self, variant_id: Optional[str]) -> None:
        """Record the variant a freshly loaded product was merged for."""
        self._applied_variant_id = variant_id or None

    def _already_applied(self, variant_id: str) -> bool:
        """Nothing newer in flight and the selection still rests on ``variant_id``."""
        if variant_id != self._applied_variant_id or self.in_flight:
            return False
        current = self._machine.variant
        return current is None or current.id == variant_id

    async def refresh(self, slug: str, variant_id: str) -> RefreshOutcome:
        """Fetch ``slug`` merged for ``variant_id`` and apply it if still the latest.

        Raises:
            RefreshFailed: the latest request failed; store and selection are untouched.
        """
        if self._already_applied(variant_id):
            self.logger.debug("Variant %s already applied; skipping refresh", variant_id)
            self._machine.abandon_change()
            log_engine_event("refresh", {"status": "skipped", "variant_id": variant_id}, "DEBUG")
            return RefreshOutcome(RefreshStatus.SKIPPED, variant_id, self._latest_token)

        token = next(self._tokens)
        self._latest_token = token
        self._in_flight_token = token
        self.logger.debug("Refresh #%d issued for %s variant %s", token, slug, variant_id)

        try:
            product = await self._fetcher.fetch_product(slug, variant_id=variant_id)
        except CatalogError as exc:
            if token != self._latest_token:
                self.logger.info(
                    "Ignoring failure of superseded refresh #%d (variant %s): %s", token, variant_id, exc
                )
                return RefreshOutcome(RefreshStatus.STALE, variant_id, token)
            self._in_flight_token = None
            self._machine.abandon_change()
            error = RefreshFailed(
                f"Refresh for variant {variant_id} failed: {exc}",
                {"slug": slug, "status_code": getattr(exc, "status_code", None)},
                variant_id=variant_id,
            )
            error_reporter.report_error(
                error, ErrorContext(product_slug=slug, variant_id=variant_id, operation="refresh")
            )
            log_engine_event(
                "refresh", {"status": "failed", "variant_id": variant_id, "error": str(exc)}, "WARNING"
            )
            raise error from exc
        except Exception:
            if token == self._latest_token:
                self._in_flight_token = None
                self._machine.abandon_change()
            raise

        if token != self._latest_token:
            self.logger.info(
                "Discarding stale response #%d for variant %s (latest is #%d)",
                token,
                variant_id,
                self._latest_token,
            )
            log_engine_event("refresh", {"status": "stale", "variant_id": variant_id, "token": token}, "DEBUG")
            return RefreshOutcome(RefreshStatus.STALE, variant_id, token)

        self._in_flight_token = None
        self._apply(product, variant_id)
        log_engine_event(
            "refresh",
            {"status": "applied", "variant_id": variant_id, "selection": self._machine.selection.as_dict()},
        )
        return RefreshOutcome(RefreshStatus.APPLIED, variant_id, token, product)

    def _apply(self, product: Product, variant_id: str) -> None:
        store = VariantStore(product)
        previous = self._machine.variant
        selection = self._machine.selection

        # Store and merged product-level fields first
        self._on_store_replaced(store)

        resolved = store.resolve(variant_id)
        if resolved is None:
            self.logger.warning(
                "Refresh for variant %s carried no selected variant; keeping selection", variant_id
            )
            self._settle(store, selection, previous, variant_id)
            return

        for dimension in SINGULAR_DIMENSIONS:
            selection = selection.with_value(dimension, resolved.attribute(dimension))

        previous_sizes = previous.size_options if previous is not None else ()
        if resolved.size_options != previous_sizes:
            active_size = resolved.size_options[0] if resolved.size_options else ""
            selection = selection.with_value(AttributeDimension.SIZE, active_size)

        self._settle(store, selection, resolved, variant_id)

    def _settle(
        self, store: VariantStore, selection: Selection, variant: Optional[Variant], variant_id: str
    ) -> None:
        self._machine.settle_refresh(selection, variant)
        self._applied_variant_id = variant_id
        # Default selection reruns after every merge; the settled cause makes it decline
        self._machine.initialize(store)
