"""Tests for the health check route."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from services.api.dependencies import get_registry
from services.api.registry import SelectionSessionRegistry
from services.api.routes.health import router as health_router

from tests.catalog_factories import make_fetcher, variant_payload


def _create_test_app(registry: SelectionSessionRegistry) -> FastAPI:
    app = FastAPI()

    async def _get_registry_override():
        return registry

    app.dependency_overrides[get_registry] = _get_registry_override
    app.include_router(health_router, prefix="/api")
    return app


def test_health_check_without_sessions() -> None:
    registry = SelectionSessionRegistry(make_fetcher([]))

    with TestClient(_create_test_app(registry)) as client:
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "sessions": 0}


def test_health_check_counts_sessions() -> None:
    registry = SelectionSessionRegistry(make_fetcher([variant_payload("v-red", color="Red")]))
    app = _create_test_app(registry)

    with TestClient(app) as client:
        client.portal.call(registry.create, "classic-tee")
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["sessions"] == 1
