"""Tests for refresh sequencing, idempotence and failure handling."""

import asyncio

import pytest

from core.refresh_coordinator import RefreshCoordinator
from core.selection_state import SelectionMachine
from core.types import AttributeDimension, RefreshStatus, UpdateCause
from core.variant_store import VariantStore
from utils.error_handling import RefreshFailed, error_reporter

from tests.catalog_factories import make_fetcher, variant_payload


class _Harness:
    def __init__(self, fetcher):
        self.fetcher = fetcher
        self.machine = SelectionMachine()
        self.stores = []
        self.coordinator = RefreshCoordinator(fetcher, self.machine, self.stores.append)

    @property
    def store(self) -> VariantStore:
        return self.stores[-1]

    async def load(self):
        product = await self.fetcher.fetch_product("classic-tee")
        store = VariantStore(product)
        self.stores.append(store)
        self.machine.initialize(store)
        self.coordinator.mark_applied(None)
        self.fetcher.calls.clear()


@pytest.mark.asyncio
async def test_refresh_applies_authoritative_selection(tee_variants):
    harness = _Harness(make_fetcher(tee_variants))
    await harness.load()

    harness.machine.begin_user_change(AttributeDimension.COLOR)
    outcome = await harness.coordinator.refresh("classic-tee", "v-blue")

    assert outcome.status is RefreshStatus.APPLIED
    assert outcome.applied
    assert harness.fetcher.calls == [("classic-tee", "v-blue")]
    assert harness.machine.variant.id == "v-blue"
    assert harness.machine.selection.color == "Blue"
    assert harness.machine.selection.size == "L"
    assert harness.machine.last_cause is UpdateCause.REFRESH_SETTLED
    assert harness.store.product.price == 1200.0
    assert harness.coordinator.applied_variant_id == "v-blue"


@pytest.mark.asyncio
async def test_second_refresh_for_same_variant_is_a_noop(tee_variants):
    harness = _Harness(make_fetcher(tee_variants))
    await harness.load()

    await harness.coordinator.refresh("classic-tee", "v-blue")
    outcome = await harness.coordinator.refresh("classic-tee", "v-blue")

    assert outcome.status is RefreshStatus.SKIPPED
    assert harness.fetcher.calls == [("classic-tee", "v-blue")]
    assert harness.machine.user_change_pending is False


@pytest.mark.asyncio
async def test_stale_response_is_discarded(tee_variants):
    fetcher = make_fetcher(tee_variants)
    harness = _Harness(fetcher)
    await harness.load()

    gate_red = fetcher.hold("v-red")
    gate_blue = fetcher.hold("v-blue")

    first = asyncio.create_task(harness.coordinator.refresh("classic-tee", "v-red"))
    await asyncio.sleep(0)
    second = asyncio.create_task(harness.coordinator.refresh("classic-tee", "v-blue"))
    await asyncio.sleep(0)

    gate_blue.set()
    assert (await second).status is RefreshStatus.APPLIED
    gate_red.set()
    assert (await first).status is RefreshStatus.STALE

    assert harness.machine.variant.id == "v-blue"
    assert harness.machine.selection.color == "Blue"
    assert harness.store.product.price == 1200.0


@pytest.mark.asyncio
async def test_same_variant_requested_twice_in_flight_applies_latest(tee_variants):
    fetcher = make_fetcher(tee_variants)
    harness = _Harness(fetcher)
    await harness.load()
    await harness.coordinator.refresh("classic-tee", "v-blue")
    fetcher.calls.clear()

    gate = fetcher.hold("v-red")
    pending = asyncio.create_task(harness.coordinator.refresh("classic-tee", "v-red"))
    await asyncio.sleep(0)
    # v-blue was last applied, but a newer request is in flight
    latest = await harness.coordinator.refresh("classic-tee", "v-blue")
    gate.set()

    assert latest.status is RefreshStatus.APPLIED
    assert (await pending).status is RefreshStatus.STALE
    assert [call[1] for call in fetcher.calls] == ["v-red", "v-blue"]
    assert harness.machine.variant.id == "v-blue"


@pytest.mark.asyncio
async def test_failed_refresh_leaves_state_untouched(tee_variants):
    fetcher = make_fetcher(tee_variants)
    harness = _Harness(fetcher)
    await harness.load()
    store_before = harness.store
    fetcher.fail("v-blue")

    harness.machine.begin_user_change(AttributeDimension.COLOR)
    with pytest.raises(RefreshFailed) as exc_info:
        await harness.coordinator.refresh("classic-tee", "v-blue")

    assert exc_info.value.variant_id == "v-blue"
    assert harness.store is store_before
    assert harness.machine.variant.id == "v-red"
    assert harness.machine.selection.color == "Red"
    assert harness.machine.user_change_pending is False
    assert harness.machine.last_cause is UpdateCause.INIT
    assert error_reporter.get_error_trends() == {"RefreshFailed": 1}

    # No automatic retry; the next request goes out again
    fetcher.recover("v-blue")
    outcome = await harness.coordinator.refresh("classic-tee", "v-blue")
    assert outcome.status is RefreshStatus.APPLIED


@pytest.mark.asyncio
async def test_superseded_failure_is_not_raised(tee_variants):
    fetcher = make_fetcher(tee_variants)
    harness = _Harness(fetcher)
    await harness.load()
    fetcher.fail("v-red")
    gate = fetcher.hold("v-red")

    stale = asyncio.create_task(harness.coordinator.refresh("classic-tee", "v-red"))
    await asyncio.sleep(0)
    await harness.coordinator.refresh("classic-tee", "v-blue")
    gate.set()

    assert (await stale).status is RefreshStatus.STALE
    assert harness.machine.variant.id == "v-blue"


@pytest.mark.asyncio
async def test_size_kept_when_composition_unchanged():
    variants = [
        variant_payload("v-red", color="Red", size="S,M,L"),
        variant_payload("v-blue", color="Blue", size="S,M,L"),
        variant_payload("v-kids", color="Green", size="4,6"),
    ]
    harness = _Harness(make_fetcher(variants))
    await harness.load()
    red = harness.store.find("v-red")
    harness.machine.commit_user_change(harness.machine.selection.with_value(AttributeDimension.SIZE, "L"), red)

    await harness.coordinator.refresh("classic-tee", "v-blue")
    assert harness.machine.selection.size == "L"

    await harness.coordinator.refresh("classic-tee", "v-kids")
    assert harness.machine.selection.size == "4"


@pytest.mark.asyncio
async def test_default_selection_declines_after_user_refresh(monkeypatch):
    variants = [
        variant_payload("ssd-256", storage="256GB", ram="8GB"),
        variant_payload("ssd-512", storage="512GB", ram="8GB"),
    ]
    harness = _Harness(make_fetcher(variants))
    await harness.load()
    assert harness.machine.variant.id == "ssd-256"

    decisions = []
    initialize = SelectionMachine.initialize

    def recording_initialize(machine, store, variant_id=None):
        decisions.append(initialize(machine, store, variant_id))
        return decisions[-1]

    monkeypatch.setattr(SelectionMachine, "initialize", recording_initialize)

    harness.machine.begin_user_change(AttributeDimension.STORAGE)
    await harness.coordinator.refresh("classic-tee", "ssd-512")

    assert decisions == [False]
    assert harness.machine.variant.id == "ssd-512"
    assert harness.machine.selection.as_dict() == {"color": "", "size": "", "storage": "512GB", "ram": "8GB"}
    assert harness.machine.last_cause is UpdateCause.REFRESH_SETTLED
