"""
Product catalog API routes
"""
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from roomstager.schemas.composition import ProductSchema
from roomstager.services import catalog_service
from roomstager.services.placement_service import ProductCategory

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductSchema])
async def get_products(category: Optional[ProductCategory] = Query(None, description="plant or tile")):
    """List catalog products in display order"""
    return catalog_service.list_products(category)


@router.get("/{product_id}", response_model=ProductSchema)
async def get_product(product_id: int):
    entry = catalog_service.get_product(product_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return entry
