"""
Placement policies: where, and by which rule, a product goes into a scene.

Two policies are supported:

1. CATEGORY_RULE - a static lookup from (category, size class) to a
   natural-language instruction. The model chooses the exact spot.
2. SPATIAL - a bounded randomized search over predefined zones that keeps
   sequentially placed items apart, with a deterministic fallback. Used for
   multi-item runs.

All positions are percentages (0-100) of the original scene.
"""
import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

MAX_PLACEMENT_ATTEMPTS = 50
MIN_SEPARATION_PERCENT = 25.0


class ProductCategory(str, Enum):
    """Product categories the pipeline knows how to place"""

    PLANT = "plant"
    TILE = "tile"


class PlantSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HUGE = "huge"


class PlacementPolicy(str, Enum):
    CATEGORY_RULE = "category_rule"
    SPATIAL = "spatial"


@dataclass(frozen=True)
class ProductDescriptor:
    """A product as supplied by the catalog (or by an uploaded image)"""

    name: str
    category: ProductCategory
    size_class: Optional[str] = None  # small/medium/large/huge, plants only
    picture_count: Optional[int] = None  # tile arrangements only
    image_url: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class OccupiedRegion:
    """A position already taken by a previously placed item"""

    x_percent: float
    y_percent: float
    category: ProductCategory


@dataclass(frozen=True)
class PlacementRequest:
    product: ProductDescriptor
    occupied: Tuple[OccupiedRegion, ...] = ()
    policy: PlacementPolicy = PlacementPolicy.CATEGORY_RULE


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of a placement decision.

    rule is always set. The position fields are only set by the spatial
    policy; attempts/used_fallback record how the position was found.
    """

    rule: str
    category: ProductCategory
    x_percent: Optional[float] = None
    y_percent: Optional[float] = None
    zone: Optional[str] = None
    attempts: int = 0
    used_fallback: bool = False

    @property
    def has_position(self) -> bool:
        return self.x_percent is not None and self.y_percent is not None

    def to_occupied_region(self) -> Optional[OccupiedRegion]:
        if not self.has_position:
            return None
        return OccupiedRegion(x_percent=self.x_percent, y_percent=self.y_percent, category=self.category)


@dataclass(frozen=True)
class PlacementZone:
    """Axis-aligned rectangle in scene percentages"""

    name: str
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def contains(self, x: float, y: float) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max


# Tiles hang on walls
WALL_ZONES: Tuple[PlacementZone, ...] = (
    PlacementZone("left_wall", x_min=5, x_max=25, y_min=15, y_max=55),
    PlacementZone("right_wall", x_min=75, x_max=95, y_min=15, y_max=55),
    PlacementZone("top_wall", x_min=30, x_max=70, y_min=5, y_max=25),
)

# Plants stand on the floor or on furniture
SURFACE_ZONES: Tuple[PlacementZone, ...] = (
    PlacementZone("floor", x_min=10, x_max=90, y_min=65, y_max=90),
    PlacementZone("table_shelf", x_min=15, x_max=85, y_min=45, y_max=65),
)

ZONES_BY_CATEGORY = {
    ProductCategory.TILE: WALL_ZONES,
    ProductCategory.PLANT: SURFACE_ZONES,
}

# Fallback rows used when the randomized search gives up
FALLBACK_Y_PERCENT = {
    ProductCategory.TILE: 15.0,
    ProductCategory.PLANT: 75.0,
}


PLANT_PLACEMENT_RULES = {
    PlantSize.SMALL: (
        "Place the plant on elevated surfaces like desks, tables, shelves, or countertops where there is "
        "reasonable space. Choose locations that make sense for small plants - near windows, on side tables, "
        "or on work surfaces."
    ),
    PlantSize.MEDIUM: (
        "Place the plant on the floor near furniture, in corners, or on larger surfaces like coffee tables or "
        "dining tables. Position it where it complements the existing furniture without blocking walkways."
    ),
    PlantSize.LARGE: (
        "Place the plant on the floor in open spaces, corners, or as a focal point in the room. Ensure it has "
        "enough space around it and doesn't obstruct movement or block important views."
    ),
    PlantSize.HUGE: (
        "Place the plant on the floor in large open areas where it can serve as a statement piece. Position it "
        "in corners, near windows, or as a room divider. Make sure it has plenty of space and doesn't overwhelm "
        "the room."
    ),
}

DEFAULT_PLANT_RULE = "Place the plant in a logical location that makes sense for its size and the room layout."

TILE_RULE_TEMPLATE = (
    "Place the gallery wall ({pictures} arranged together) on a wall surface in the room. Look for empty wall "
    "spaces, above furniture like sofas or beds, in hallways, or on feature walls. Position it at eye level "
    "(typically 57-60 inches from the floor) and ensure it complements the room's existing decor and color "
    "scheme. The gallery wall should be properly sized and oriented for the wall space, maintaining the same "
    "shape and arrangement of the {pictures} together."
)


def get_placement_rule(
    category: ProductCategory, size_class: Optional[str] = None, picture_count: Optional[int] = None
) -> str:
    """Static rule lookup for a product category and size."""
    if ProductCategory(category) == ProductCategory.TILE:
        if picture_count and picture_count > 0:
            pictures = "1 picture" if picture_count == 1 else f"{picture_count} pictures"
        else:
            pictures = "3-4 pictures"
        return TILE_RULE_TEMPLATE.format(pictures=pictures)

    try:
        size = PlantSize((size_class or "").strip().lower())
    except ValueError:
        logger.info(f"Unrecognized plant size '{size_class}', using default placement rule")
        return DEFAULT_PLANT_RULE
    return PLANT_PLACEMENT_RULES[size]


def _distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x1 - x2, y1 - y2)


def fallback_position(category: ProductCategory, occupied_count: int) -> Tuple[float, float]:
    """Deterministic position used once the randomized search is exhausted."""
    x = 20 + (occupied_count * 20) % 60
    return float(x), FALLBACK_Y_PERCENT[ProductCategory(category)]


def find_spatial_placement(
    category: ProductCategory,
    occupied: Sequence[OccupiedRegion],
    rng,
    max_attempts: int = MAX_PLACEMENT_ATTEMPTS,
    min_separation: float = MIN_SEPARATION_PERCENT,
) -> Tuple[float, float, str, int, bool]:
    """Randomized, collision-avoiding search.

    Draws up to max_attempts points, each uniformly inside a randomly chosen
    zone for the category, and accepts the first that keeps at least
    min_separation from every occupied region.

    rng is any object with choice() and uniform() (random.Random works).

    Returns:
        (x_percent, y_percent, zone_name, attempts, used_fallback)
    """
    category = ProductCategory(category)
    zones = ZONES_BY_CATEGORY[category]

    for attempt in range(1, max_attempts + 1):
        zone = rng.choice(zones)
        x = rng.uniform(zone.x_min, zone.x_max)
        y = rng.uniform(zone.y_min, zone.y_max)

        if all(_distance(x, y, region.x_percent, region.y_percent) >= min_separation for region in occupied):
            logger.debug(f"Placement accepted in {zone.name} at ({x:.1f}%, {y:.1f}%) after {attempt} attempt(s)")
            return x, y, zone.name, attempt, False

    x, y = fallback_position(category, len(occupied))
    zone_name = next((zone.name for zone in zones if zone.contains(x, y)), "fallback")
    logger.info(
        f"No collision-free {category.value} position after {max_attempts} attempts, "
        f"falling back to ({x:.0f}%, {y:.0f}%)"
    )
    return x, y, zone_name, max_attempts, True


def decide_placement(
    request: PlacementRequest,
    rng: Optional[random.Random] = None,
    max_attempts: int = MAX_PLACEMENT_ATTEMPTS,
    min_separation: float = MIN_SEPARATION_PERCENT,
) -> PlacementResult:
    """Decide where and how a product should be placed. Never fails."""
    product = request.product
    rule = get_placement_rule(product.category, product.size_class, product.picture_count)

    if request.policy == PlacementPolicy.CATEGORY_RULE:
        return PlacementResult(rule=rule, category=product.category)

    if rng is None:
        rng = random.Random()

    x, y, zone, attempts, used_fallback = find_spatial_placement(
        product.category,
        request.occupied,
        rng,
        max_attempts=max_attempts,
        min_separation=min_separation,
    )
    return PlacementResult(
        rule=rule,
        category=product.category,
        x_percent=x,
        y_percent=y,
        zone=zone,
        attempts=attempts,
        used_fallback=used_fallback,
    )
