"""
Composition API routes: place catalog or uploaded products into room photos
"""
import logging
from typing import Tuple

from fastapi import APIRouter, Depends, HTTPException

from roomstager.core.config import settings
from roomstager.core.exceptions import (
    CompositionError,
    DecodeError,
    GeometryMismatchError,
    NoImageReturned,
    SurfaceError,
    TransportError,
)
from roomstager.schemas.composition import (
    ComposeRequest,
    ComposeResponse,
    ComposeSequenceRequest,
    ComposeSequenceResponse,
    PlacementSchema,
    ProductInput,
)
from roomstager.services import catalog_service
from roomstager.services.composition_service import CompositionService, SequenceItem, get_composition_service
from roomstager.services.geometry_service import RasterImage
from roomstager.services.placement_service import PlacementResult, ProductDescriptor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/composition", tags=["composition"])

ERROR_STATUS_CODES = {
    DecodeError: 400,
    SurfaceError: 500,
    TransportError: 502,
    NoImageReturned: 502,
    GeometryMismatchError: 502,
}


def _http_error(error: CompositionError) -> HTTPException:
    status_code = next((code for cls, code in ERROR_STATUS_CODES.items() if isinstance(error, cls)), 500)
    return HTTPException(status_code=status_code, detail=error.user_message)


def _placement_schema(placement: PlacementResult) -> PlacementSchema:
    return PlacementSchema(
        rule=placement.rule,
        category=placement.category,
        x_percent=placement.x_percent,
        y_percent=placement.y_percent,
        zone=placement.zone,
        attempts=placement.attempts,
        used_fallback=placement.used_fallback,
    )


async def _resolve_product(product_input: ProductInput) -> Tuple[RasterImage, ProductDescriptor]:
    """Turn a request item into an image and a descriptor.

    Catalog ids supply defaults; explicit fields and an uploaded image win.
    """
    entry = None
    if product_input.product_id is not None:
        entry = catalog_service.get_product(product_input.product_id)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Product {product_input.product_id} not found")

    base = catalog_service.to_descriptor(entry) if entry else None
    category = product_input.category or (base.category if base else None)
    if category is None:
        raise HTTPException(status_code=422, detail="Either product_id or category must be provided")

    descriptor = ProductDescriptor(
        name=product_input.name or (base.name if base else f"uploaded {category.value}"),
        category=category,
        size_class=product_input.size_class or (base.size_class if base else None),
        picture_count=product_input.picture_count or (base.picture_count if base else None),
        image_url=base.image_url if base else None,
        id=base.id if base else None,
    )

    if product_input.product_image:
        image = RasterImage.from_base64(product_input.product_image)
    elif base is not None:
        image = await catalog_service.load_product_image(descriptor)
    else:
        raise HTTPException(status_code=422, detail="product_image is required for products outside the catalog")

    return image, descriptor


@router.post("/compose", response_model=ComposeResponse)
async def compose(request: ComposeRequest, service: CompositionService = Depends(get_composition_service)):
    """Place one product into a room photo"""
    try:
        scene = RasterImage.from_base64(request.scene_image)
        product_image, product = await _resolve_product(request)
        result = await service.compose(
            product_image,
            product,
            scene,
            policy=request.policy,
            timeout=settings.google_ai_timeout_seconds,
        )
    except CompositionError as e:
        logger.error(f"Composition failed: {e.user_message}")
        raise _http_error(e) from e

    return ComposeResponse(
        image=result.image.to_data_url(),
        width=result.image.width,
        height=result.image.height,
        instruction=result.instruction,
        placement=_placement_schema(result.placement),
        processing_time=result.processing_time,
    )


@router.post("/compose-sequence", response_model=ComposeSequenceResponse)
async def compose_sequence(
    request: ComposeSequenceRequest, service: CompositionService = Depends(get_composition_service)
):
    """Place several products one after another, keeping them apart.

    A failure part-way returns 200 with status "partial" and the last good
    scene; a failure on the first item returns status "failed".
    """
    try:
        scene = RasterImage.from_base64(request.scene_image)
        items = []
        for product_input in request.items:
            product_image, product = await _resolve_product(product_input)
            items.append(SequenceItem(product_image=product_image, product=product))
    except CompositionError as e:
        logger.error(f"Could not prepare sequence inputs: {e.user_message}")
        raise _http_error(e) from e

    outcome = await service.compose_sequence(scene, items, timeout=settings.google_ai_timeout_seconds)

    return ComposeSequenceResponse(
        status=outcome.status.value,
        image=outcome.scene.to_data_url(),
        width=outcome.scene.width,
        height=outcome.scene.height,
        completed=outcome.completed,
        placements=[_placement_schema(result.placement) for result in outcome.results],
        instructions=[result.instruction for result in outcome.results],
        error=outcome.error.user_message if outcome.error else None,
        failed_index=outcome.failed_index,
    )
