"""Health check endpoint."""
from fastapi import APIRouter, Depends

from ..dependencies import get_registry
from ..registry import SelectionSessionRegistry


router = APIRouter()


@router.get("/health")
async def health_check(registry: SelectionSessionRegistry = Depends(get_registry)):
    """
    Health check.

    Args:
        registry: Selection session registry (injected)

    Returns:
        dict: Service status and the number of live selection sessions

    Example response:
        ```json
        {
            "status": "ok",
            "sessions": 3
        }
        ```
    """
    return {
        "status": "ok",
        "sessions": len(registry)
    }
