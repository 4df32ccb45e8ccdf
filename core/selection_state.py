"""
Selection state and its transitions.

Every committed update carries an ``UpdateCause``. The default-selection
transition only runs when ``can_initialize`` says so, and that guard reads
the cause of the last update instead of a flag toggled by convention.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.types import (
    SINGULAR_DIMENSIONS,
    AttributeDimension,
    EngineState,
    Selection,
    UpdateCause,
    Variant,
)
from core.variant_store import VariantStore
from utils.logger import log_engine_event

logger = logging.getLogger(__name__)

_USER_DRIVEN = (UpdateCause.USER, UpdateCause.REFRESH_SETTLED)


class SelectionMachine:
    """Single owner of the shopper's selection for one product view."""

    def __init__(self) -> None:
        self._state = EngineState.UNINITIALIZED
        self._selection = Selection()
        self._variant: Optional[Variant] = None
        self._image_index = 0
        self._last_cause: Optional[UpdateCause] = None
        self._cause_before_change: Optional[UpdateCause] = None
        self._pending_dimension: Optional[AttributeDimension] = None
        self._preview: Optional[Variant] = None
        self._index_before_preview = 0

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def variant(self) -> Optional[Variant]:
        return self._variant

    @property
    def last_cause(self) -> Optional[UpdateCause]:
        return self._last_cause

    @property
    def user_change_pending(self) -> bool:
        return self._pending_dimension is not None

    @property
    def preview(self) -> Optional[Variant]:
        return self._preview

    def is_consistent(self) -> bool:
        """Every singular dimension of the resolved variant equals the selection."""
        if self._variant is None:
            return True
        for dimension in SINGULAR_DIMENSIONS:
            value = self._variant.attribute(dimension)
            if value and value != self._selection.get(dimension):
                return False
        return True

    # ------------------------------------------------------------ transitions

    def can_initialize(self, store: VariantStore) -> bool:
        """Guard of the default-selection transition."""
        if self.user_change_pending:
            return False
        if self._last_cause in _USER_DRIVEN:
            return False
        if self._selection.color:
            return False
        return len(store) > 0

    def initialize(self, store: VariantStore, variant_id: Optional[str] = None) -> bool:
        """Default the selection from the requested, server-designated or first active variant."""
        if not self.can_initialize(store):
            logger.debug(
                "Skipping default selection (state=%s, cause=%s, pending=%s)",
                self._state.value,
                self._last_cause.value if self._last_cause else None,
                self._pending_dimension,
            )
            if self._state is EngineState.UNINITIALIZED and not self.user_change_pending:
                self._state = EngineState.INITIALIZED
            return False

        variant = (store.resolve(variant_id) if variant_id else store.selected_variant) or store.first_active()
        if variant is None:
            logger.warning("Product %s has no active variants", store.product.slug)
            self._state = EngineState.INITIALIZED
            self._last_cause = UpdateCause.INIT
            return True

        self._commit(UpdateCause.INIT, Selection.from_variant(variant), variant, reset_images=True)
        self._state = EngineState.INITIALIZED
        log_engine_event("init", {"variant_id": variant.id, "selection": self._selection.as_dict()})
        return True

    def begin_user_change(self, dimension: AttributeDimension) -> None:
        """Mark a user-driven change that still waits for the catalog."""
        if self._pending_dimension is None:
            self._cause_before_change = self._last_cause
        self._pending_dimension = dimension
        self._last_cause = UpdateCause.USER
        self._state = EngineState.ATTRIBUTE_CHANGED

    def commit_user_change(self, selection: Selection, variant: Optional[Variant]) -> None:
        """Apply a change that needs no round-trip (size)."""
        self._commit(UpdateCause.USER, selection, variant, reset_images=False)
        self._pending_dimension = None
        self._state = EngineState.INITIALIZED
        log_engine_event(
            "selection",
            {"cause": UpdateCause.USER.value, "variant_id": variant.id if variant else None, **selection.as_dict()},
        )

    def settle_refresh(self, selection: Selection, variant: Optional[Variant]) -> None:
        """Commit the authoritative selection after a refresh has been merged."""
        self._commit(UpdateCause.REFRESH_SETTLED, selection, variant, reset_images=True)
        self._pending_dimension = None
        self._state = EngineState.INITIALIZED

    def abandon_change(self) -> None:
        """A pending change produced nothing; restore the pre-change bookkeeping."""
        if self._pending_dimension is None:
            return
        self._pending_dimension = None
        self._last_cause = self._cause_before_change
        self._state = EngineState.INITIALIZED

    def _commit(
        self,
        cause: UpdateCause,
        selection: Selection,
        variant: Optional[Variant],
        *,
        reset_images: bool,
    ) -> None:
        previous_id = self._variant.id if self._variant else None
        current_id = variant.id if variant else None
        if reset_images or previous_id != current_id:
            self._image_index = 0
            self._index_before_preview = 0

        self._selection = selection
        self._variant = variant
        self._last_cause = cause

        if not self.is_consistent():
            logger.warning(
                "Selection %s disagrees with variant %s attributes %s",
                selection.as_dict(),
                current_id,
                variant.attributes if variant else {},
            )

    # ----------------------------------------------------------------- images

    def image_index(self, image_count: int) -> int:
        """Index clamped to the image list currently on display."""
        if image_count <= 0:
            return 0
        return min(self._image_index, image_count - 1)

    def select_image(self, index: int) -> None:
        self._image_index = max(0, int(index))

    def start_preview(self, variant: Variant) -> None:
        if self._preview is None:
            self._index_before_preview = self._image_index
        self._preview = variant
        self._image_index = 0
        log_engine_event("preview", {"variant_id": variant.id, "color": variant.color}, "DEBUG")

    def end_preview(self) -> None:
        if self._preview is None:
            return
        self._preview = None
        self._image_index = self._index_before_preview
