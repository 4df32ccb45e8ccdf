"""HTTP service exposing variant selection sessions for storefront pages."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .registry import SelectionSessionRegistry
from .routes import health, selection
from network.catalog_client import CatalogClient
from utils.logger import setup_logger

API_VERSION = "1.0.0"

settings = get_settings()
logger = setup_logger("variant_engine.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the catalog connection pool and the session registry for the app's lifetime."""
    client = CatalogClient(settings.catalog_base_url, timeout=settings.catalog_timeout_seconds)
    app.state.catalog_client = client
    app.state.registry = SelectionSessionRegistry(client, max_sessions=settings.max_sessions)
    logger.info(
        "Variant API ready: catalog=%s, max_sessions=%d, cors=%s",
        client.base_url,
        settings.max_sessions,
        settings.cors_origins,
    )
    try:
        yield
    finally:
        await client.aclose()
        logger.info(
            "Catalog client closed after %d requests (%.1f%% ok)",
            client.metrics.total_requests,
            client.metrics.success_rate * 100,
        )


app = FastAPI(
    title="Variant Engine API",
    version=API_VERSION,
    description=(
        "Selection sessions that turn a shopper's colour, size, storage and RAM "
        "picks into one purchasable variant, with its price, stock and images."
    ),
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(selection.router, prefix="/api/selections", tags=["selections"])
app.include_router(health.router, prefix="/api", tags=["health"])


@app.get("/api")
def api_root():
    """Entry point listing the selection and health endpoints."""
    return {
        "service": "variant-engine",
        "version": API_VERSION,
        "links": {
            "selections": "/api/selections",
            "health": "/api/health",
            "docs": "/api/docs",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("services.api.main:app", host="127.0.0.1", port=8000, reload=True)
