"""FastAPI dependencies."""
from fastapi import Request

from .registry import SelectionSessionRegistry


async def get_registry(request: Request) -> SelectionSessionRegistry:
    """
    Get the selection session registry from app state.

    The registry is created during application startup and stored in
    app.state, sharing the application's CatalogClient.

    Args:
        request: FastAPI request object

    Returns:
        SelectionSessionRegistry: Registry of live selection engines

    Example usage:
        ```python
        @router.get("/selections/{session_id}")
        async def get_selection(
            session_id: str,
            registry: SelectionSessionRegistry = Depends(get_registry),
        ):
            engine = registry.get(session_id)
        ```
    """
    return request.app.state.registry

