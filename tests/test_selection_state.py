"""Tests for the selection state machine."""

from core.selection_state import SelectionMachine
from core.types import (
    AttributeDimension,
    EngineState,
    Product,
    Selection,
    UpdateCause,
)
from core.variant_store import VariantStore


def _store(selected_id=None) -> VariantStore:
    variants = [
        {"_id": "off", "attributes": {"color": "Grey", "size": "S"}, "active": False},
        {"_id": "red", "attributes": {"color": "Red", "size": "S,M"}, "active": True, "images": ["/r1", "/r2", "/r3"]},
        {"_id": "blue", "attributes": {"color": "Blue", "size": "L"}, "active": True, "images": ["/b1"]},
    ]
    payload = {"_id": "p", "slug": "tee", "variants": variants}
    if selected_id:
        payload["selectedVariant"] = next(v for v in variants if v["_id"] == selected_id)
    return VariantStore(Product.model_validate(payload))


def test_initialize_prefers_first_active_variant() -> None:
    machine = SelectionMachine()

    assert machine.state is EngineState.UNINITIALIZED
    assert machine.initialize(_store()) is True

    assert machine.state is EngineState.INITIALIZED
    assert machine.last_cause is UpdateCause.INIT
    assert machine.variant.id == "red"
    assert machine.selection == Selection(color="Red", size="S")


def test_initialize_prefers_server_selected_variant() -> None:
    machine = SelectionMachine()
    machine.initialize(_store(selected_id="blue"))

    assert machine.variant.id == "blue"
    assert machine.selection.color == "Blue"
    assert machine.selection.size == "L"


def test_initialize_skipped_after_user_driven_change() -> None:
    machine = SelectionMachine()
    store = _store()
    machine.initialize(store)
    blue = store.find("blue")

    machine.begin_user_change(AttributeDimension.COLOR)
    assert machine.can_initialize(store) is False
    assert machine.state is EngineState.ATTRIBUTE_CHANGED

    machine.settle_refresh(Selection.from_variant(blue), blue)
    assert machine.last_cause is UpdateCause.REFRESH_SETTLED
    assert machine.initialize(store) is False
    assert machine.variant.id == "blue"


def test_abandon_change_restores_previous_cause() -> None:
    machine = SelectionMachine()
    machine.initialize(_store())

    machine.begin_user_change(AttributeDimension.STORAGE)
    machine.abandon_change()

    assert machine.user_change_pending is False
    assert machine.last_cause is UpdateCause.INIT
    assert machine.state is EngineState.INITIALIZED


def test_empty_store_initializes_without_variant() -> None:
    machine = SelectionMachine()
    store = VariantStore(Product.model_validate({"slug": "empty", "variants": []}))

    machine.initialize(store)

    assert machine.state is EngineState.INITIALIZED
    assert machine.variant is None
    assert machine.selection == Selection()


def test_no_active_variants_initializes_empty_selection() -> None:
    machine = SelectionMachine()
    store = VariantStore(
        Product.model_validate({"slug": "gone", "variants": [{"_id": "x", "attributes": {"color": "Red"}}]})
    )

    assert machine.initialize(store) is True
    assert machine.state is EngineState.INITIALIZED
    assert machine.variant is None


def test_image_index_is_clamped_and_reset_on_variant_change() -> None:
    machine = SelectionMachine()
    store = _store()
    machine.initialize(store)

    machine.select_image(2)
    assert machine.image_index(3) == 2
    assert machine.image_index(1) == 0
    assert machine.image_index(0) == 0

    blue = store.find("blue")
    machine.commit_user_change(Selection.from_variant(blue), blue)
    assert machine.image_index(3) == 0


def test_size_change_on_same_variant_keeps_image_index() -> None:
    machine = SelectionMachine()
    store = _store()
    machine.initialize(store)
    red = store.find("red")

    machine.select_image(1)
    machine.commit_user_change(Selection(color="Red", size="M"), red)

    assert machine.image_index(3) == 1
    assert machine.selection.size == "M"
    assert machine.is_consistent()


def test_preview_resets_and_restores_image_index() -> None:
    machine = SelectionMachine()
    store = _store()
    machine.initialize(store)
    machine.select_image(2)

    machine.start_preview(store.find("blue"))
    assert machine.preview.id == "blue"
    assert machine.image_index(3) == 0
    assert machine.selection.color == "Red"

    machine.end_preview()
    assert machine.preview is None
    assert machine.image_index(3) == 2
