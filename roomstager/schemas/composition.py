"""
Pydantic schemas for the composition API
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from roomstager.services.placement_service import PlacementPolicy, ProductCategory


class ProductInput(BaseModel):
    """A product to place: either a catalog id, or an uploaded image with its category"""

    product_id: Optional[int] = None
    product_image: Optional[str] = None  # Base64 or data URL, overrides the catalog image
    name: Optional[str] = None
    category: Optional[ProductCategory] = None
    size_class: Optional[str] = None
    picture_count: Optional[int] = Field(default=None, ge=1)

    class Config:
        json_schema_extra = {"example": {"product_id": 4}}


class ComposeRequest(ProductInput):
    """Request to place one product into a scene"""

    scene_image: str  # Base64 or data URL
    policy: PlacementPolicy = PlacementPolicy.CATEGORY_RULE


class ComposeSequenceRequest(BaseModel):
    """Request to place several products one after another"""

    scene_image: str
    items: List[ProductInput] = Field(min_length=1)


class PlacementSchema(BaseModel):
    rule: str
    category: ProductCategory
    x_percent: Optional[float] = None
    y_percent: Optional[float] = None
    zone: Optional[str] = None
    attempts: int = 0
    used_fallback: bool = False


class ComposeResponse(BaseModel):
    """Restored composite plus the instruction used (diagnostic only)"""

    image: str  # Data URL
    width: int
    height: int
    instruction: str
    placement: PlacementSchema
    processing_time: float = 0.0


class ComposeSequenceResponse(BaseModel):
    status: str  # complete / partial / failed
    image: str  # Last successfully composited scene
    width: int
    height: int
    completed: int
    placements: List[PlacementSchema] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    failed_index: Optional[int] = None


class ProductSchema(BaseModel):
    id: int
    name: str
    category: ProductCategory
    size_class: Optional[str] = None
    picture_count: Optional[int] = None
    image_url: str
    description: Optional[str] = None
    price: Optional[str] = None
    light_level: Optional[str] = None
    pet_friendly: Optional[bool] = None
    height: Optional[str] = None
