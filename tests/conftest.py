"""Shared fixtures."""

from __future__ import annotations

from typing import Any, Dict, List

import pytest

from tests.catalog_factories import variant_payload
from utils.error_handling import error_reporter


@pytest.fixture
def tee_variants() -> List[Dict[str, Any]]:
    return [
        variant_payload("v-red", color="Red", size="S,M", stock=5, price=1000.0, sale_price=800.0, mrp=1000.0),
        variant_payload("v-blue", color="Blue", size="L", stock=0, price=1200.0, sale_price=900.0, mrp=1200.0),
    ]


@pytest.fixture
def phone_variants() -> List[Dict[str, Any]]:
    return [
        variant_payload("ph-black-128", color="Black", storage="128GB", ram="8GB", price=50000.0),
        variant_payload("ph-black-256", color="Black", storage="256GB", ram="8GB", price=56000.0),
        variant_payload("ph-black-256-12", color="Black", storage="256GB", ram="12GB", price=60000.0),
        variant_payload("ph-white-128", color="White", storage="128GB", ram="8GB", price=50000.0),
    ]


@pytest.fixture(autouse=True)
def _reset_error_reporter():
    error_reporter.clear()
    yield
    error_reporter.clear()
