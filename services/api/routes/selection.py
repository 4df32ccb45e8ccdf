"""Selection session endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Response
import logging

from core.variant_engine import VariantSelectionEngine
from utils.error_handling import CatalogError, RefreshFailed
from ..dependencies import get_registry
from ..models import (
    NOTICE_VARIANT_NOT_FOUND,
    AttributeChangeRequest,
    CreateSelectionRequest,
    ImageSelectRequest,
    PreviewRequest,
    SelectionResponse,
)
from ..registry import SelectionSessionRegistry


logger = logging.getLogger(__name__)

router = APIRouter()


def _require_engine(registry: SelectionSessionRegistry, session_id: str) -> VariantSelectionEngine:
    engine = registry.get(session_id)
    if engine is None:
        raise HTTPException(status_code=404, detail=f"Selection session {session_id} not found")
    return engine


@router.post("", response_model=SelectionResponse, status_code=201)
async def create_selection(
    req: CreateSelectionRequest,
    registry: SelectionSessionRegistry = Depends(get_registry)
):
    """
    Open a selection session for a product.

    Fetches the product from the catalog service and defaults the selection
    to the server-designated variant, or the first active one.

    Args:
        req: Product slug and optional preselected variant
        registry: Selection session registry (injected)

    Returns:
        SelectionResponse: Initial selection state

    Raises:
        HTTPException: 502 if the catalog service could not provide the product

    Example request:
        ```json
        {
            "slug": "classic-tee",
            "variant_id": "v-blue"
        }
        ```
    """
    try:
        session_id, engine = await registry.create(req.slug, req.variant_id)
    except CatalogError as e:
        logger.warning("Could not open selection for %s: %s", req.slug, e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    logger.info("Opened selection session %s for %s", session_id, req.slug)
    return SelectionResponse.from_engine(session_id, engine)


@router.get("/{session_id}", response_model=SelectionResponse)
async def get_selection(
    session_id: str,
    registry: SelectionSessionRegistry = Depends(get_registry)
):
    """
    Get the current selection state.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    engine = _require_engine(registry, session_id)
    return SelectionResponse.from_engine(session_id, engine)


@router.put("/{session_id}/attributes", response_model=SelectionResponse)
async def change_attribute(
    session_id: str,
    req: AttributeChangeRequest,
    registry: SelectionSessionRegistry = Depends(get_registry)
):
    """
    Change one attribute of the selection.

    Colour, storage and RAM changes re-fetch the product for the chosen
    variant before answering; a size change is resolved locally. When no
    active variant matches, the selection is left as it was and the
    response carries notice "variant_not_found".

    Args:
        session_id: Selection session id
        req: Dimension and value
        registry: Selection session registry (injected)

    Returns:
        SelectionResponse: Selection after the change

    Raises:
        HTTPException: 404 if the session does not exist
        HTTPException: 502 if the catalog refresh failed

    Example request:
        ```json
        {
            "dimension": "color",
            "value": "Blue"
        }
        ```
    """
    engine = _require_engine(registry, session_id)

    try:
        resolved = await engine.set_attribute(req.dimension, req.value)
    except RefreshFailed as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    notice = None if resolved else NOTICE_VARIANT_NOT_FOUND
    return SelectionResponse.from_engine(session_id, engine, notice=notice)


@router.put("/{session_id}/preview", response_model=SelectionResponse)
async def preview_color(
    session_id: str,
    req: PreviewRequest,
    registry: SelectionSessionRegistry = Depends(get_registry)
):
    """
    Preview a colour's images while its swatch is hovered.

    The selection itself does not change. Send {"color": null} when the
    pointer leaves the swatch.
    """
    engine = _require_engine(registry, session_id)

    if req.color is None:
        engine.preview_color(None)
        return SelectionResponse.from_engine(session_id, engine)

    swatch = engine.get_attribute_options().color_variant_images.get(req.color)
    if swatch is None:
        return SelectionResponse.from_engine(session_id, engine, notice=NOTICE_VARIANT_NOT_FOUND)

    engine.preview_color(swatch.variant)
    return SelectionResponse.from_engine(session_id, engine)


@router.put("/{session_id}/image", response_model=SelectionResponse)
async def select_image(
    session_id: str,
    req: ImageSelectRequest,
    registry: SelectionSessionRegistry = Depends(get_registry)
):
    """Select the displayed image; out-of-range indexes clamp to the last image."""
    engine = _require_engine(registry, session_id)
    engine.select_image(req.index)
    return SelectionResponse.from_engine(session_id, engine)


@router.delete("/{session_id}", status_code=204)
async def delete_selection(
    session_id: str,
    registry: SelectionSessionRegistry = Depends(get_registry)
):
    """
    Close a selection session.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    if not registry.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Selection session {session_id} not found")
    return Response(status_code=204)
