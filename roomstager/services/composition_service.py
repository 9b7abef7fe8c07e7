"""
Composition pipeline orchestration.

Single item:

    normalize(product), normalize(scene)
      -> decide_placement -> assemble directive
      -> generate (Gemini) -> restore to the scene's aspect ratio

Sequence of items: the same pipeline folded over the items, each step using
the previous step's restored image as its scene and the accumulated occupied
regions for collision avoidance. Steps never overlap.
"""
import asyncio
import logging
import random
import time
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import Optional, Sequence, Tuple

from roomstager.core.config import settings
from roomstager.core.exceptions import CompositionError
from roomstager.services import directive_service, geometry_service
from roomstager.services.geometry_service import RasterImage
from roomstager.services.google_ai_service import GoogleAIImageService
from roomstager.services.placement_service import (
    OccupiedRegion,
    PlacementPolicy,
    PlacementRequest,
    PlacementResult,
    ProductDescriptor,
    decide_placement,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositionResult:
    """Final image plus the instruction that produced it (for debugging display)"""

    image: RasterImage
    instruction: str
    placement: PlacementResult
    processing_time: float = 0.0


@dataclass(frozen=True)
class SequenceItem:
    product_image: RasterImage
    product: ProductDescriptor


class SequenceStatus(str, Enum):
    COMPLETE = "complete"  # every item was placed
    PARTIAL = "partial"  # some items placed, then a step failed
    FAILED = "failed"  # the first step failed


@dataclass(frozen=True)
class SequentialCompositionResult:
    """Outcome of a multi-item run.

    scene is always the last successfully composited image (the input scene
    when nothing succeeded). A failing step's output is never included.
    """

    status: SequenceStatus
    scene: RasterImage
    results: Tuple[CompositionResult, ...] = ()
    occupied: Tuple[OccupiedRegion, ...] = ()
    error: Optional[CompositionError] = None
    failed_index: Optional[int] = None

    @property
    def completed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> bool:
        return self.status == SequenceStatus.COMPLETE


@dataclass(frozen=True)
class _SequenceState:
    current_scene: RasterImage
    occupied: Tuple[OccupiedRegion, ...] = ()
    results: Tuple[CompositionResult, ...] = ()


class CompositionService:
    """Runs the product placement pipeline against an image service"""

    def __init__(
        self,
        image_service: Optional[GoogleAIImageService] = None,
        target_dimension: Optional[int] = None,
        rng: Optional[random.Random] = None,
        strict_geometry: Optional[bool] = None,
        jpeg_quality: Optional[int] = None,
        max_attempts: Optional[int] = None,
        min_separation: Optional[float] = None,
    ):
        self.image_service = image_service or GoogleAIImageService()
        self.target_dimension = target_dimension or settings.composition_dimension
        self.rng = rng if rng is not None else random.Random()
        self.strict_geometry = settings.composition_strict_geometry if strict_geometry is None else strict_geometry
        self.jpeg_quality = jpeg_quality or settings.composition_jpeg_quality
        self.max_attempts = max_attempts or settings.placement_max_attempts
        self.min_separation = settings.placement_min_separation if min_separation is None else min_separation

    async def _run_blocking(self, func, *args, **kwargs):
        """Pillow work runs off the event loop"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def compose(
        self,
        product_image: RasterImage,
        product: ProductDescriptor,
        scene_image: RasterImage,
        occupied: Sequence[OccupiedRegion] = (),
        policy: PlacementPolicy = PlacementPolicy.CATEGORY_RULE,
        timeout: Optional[float] = None,
    ) -> CompositionResult:
        """Composite one product into one scene.

        Raises:
            CompositionError: any stage failure; nothing partial is returned
        """
        start_time = time.time()
        dimension = self.target_dimension
        logger.info(f"Starting product placement for '{product.name}' ({product.category.value}, policy={policy.value})")

        normalized_product = await self._run_blocking(
            geometry_service.normalize, product_image, dimension, quality=self.jpeg_quality
        )
        normalized_scene = await self._run_blocking(
            geometry_service.normalize, scene_image, dimension, quality=self.jpeg_quality
        )

        placement = decide_placement(
            PlacementRequest(product=product, occupied=tuple(occupied), policy=policy),
            rng=self.rng,
            max_attempts=self.max_attempts,
            min_separation=self.min_separation,
        )
        if placement.has_position:
            logger.info(
                f"Placement target ({placement.x_percent:.1f}%, {placement.y_percent:.1f}%) in {placement.zone} "
                f"after {placement.attempts} attempt(s), fallback={placement.used_fallback}"
            )

        position = (placement.x_percent, placement.y_percent) if placement.has_position else None
        directive = directive_service.assemble(
            normalized_product, normalized_scene, placement.rule, product.category, position=position
        )

        generated = await self.image_service.generate_composite(directive, timeout=timeout)

        restored = await self._run_blocking(
            geometry_service.restore,
            generated,
            normalized_scene.original,
            normalized_scene.content_rect,
            dimension,
            strict=self.strict_geometry,
            quality=self.jpeg_quality,
        )

        processing_time = time.time() - start_time
        logger.info(f"Placement of '{product.name}' complete in {processing_time:.2f}s ({restored.width}x{restored.height})")
        return CompositionResult(
            image=restored,
            instruction=directive.instruction,
            placement=placement,
            processing_time=processing_time,
        )

    async def compose_sequence(
        self,
        scene_image: RasterImage,
        items: Sequence[SequenceItem],
        occupied: Sequence[OccupiedRegion] = (),
        timeout: Optional[float] = None,
    ) -> SequentialCompositionResult:
        """Place several products one after another without overlap.

        Each item waits for the previous one to be fully restored, because its
        scene is the previous output. Stops at the first failure.
        """
        state = _SequenceState(current_scene=scene_image, occupied=tuple(occupied))

        for index, item in enumerate(items):
            try:
                result = await self.compose(
                    item.product_image,
                    item.product,
                    state.current_scene,
                    occupied=state.occupied,
                    policy=PlacementPolicy.SPATIAL,
                    timeout=timeout,
                )
            except CompositionError as e:
                status = SequenceStatus.PARTIAL if state.results else SequenceStatus.FAILED
                logger.warning(
                    f"Sequence stopped at item {index + 1}/{len(items)} ('{item.product.name}'): {e.user_message}"
                )
                return SequentialCompositionResult(
                    status=status,
                    scene=state.current_scene,
                    results=state.results,
                    occupied=state.occupied,
                    error=e,
                    failed_index=index,
                )

            state = replace(
                state,
                current_scene=result.image,
                occupied=state.occupied + (result.placement.to_occupied_region(),),
                results=state.results + (result,),
            )

        logger.info(f"Sequence complete: {len(state.results)} item(s) placed")
        return SequentialCompositionResult(
            status=SequenceStatus.COMPLETE,
            scene=state.current_scene,
            results=state.results,
            occupied=state.occupied,
        )


def get_composition_service() -> CompositionService:
    """FastAPI dependency: a fresh service per request, no shared pipeline state"""
    return CompositionService()
