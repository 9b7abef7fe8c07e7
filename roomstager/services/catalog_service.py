"""
Product catalog lookups and product image loading
"""
import asyncio
import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from roomstager.config.product_catalog import ALL_PRODUCTS
from roomstager.core.config import settings
from roomstager.core.exceptions import TransportError
from roomstager.services.geometry_service import RasterImage
from roomstager.services.placement_service import ProductCategory, ProductDescriptor

logger = logging.getLogger(__name__)


def to_descriptor(entry: Dict[str, Any]) -> ProductDescriptor:
    return ProductDescriptor(
        name=entry["name"],
        category=ProductCategory(entry["category"]),
        size_class=entry.get("size_class"),
        picture_count=entry.get("picture_count"),
        image_url=entry.get("image_url"),
        id=entry.get("id"),
    )


def list_products(category: Optional[ProductCategory] = None) -> List[Dict[str, Any]]:
    """Catalog entries in display order, optionally filtered by category"""
    if category is None:
        return list(ALL_PRODUCTS)
    category = ProductCategory(category)
    return [entry for entry in ALL_PRODUCTS if entry["category"] == category.value]


def get_product(product_id: int) -> Optional[Dict[str, Any]]:
    return next((entry for entry in ALL_PRODUCTS if entry["id"] == product_id), None)


async def _download_image(image_url: str, max_retries: int) -> bytes:
    """Download image bytes with retry and exponential backoff"""
    last_error = None
    timeout = aiohttp.ClientTimeout(total=30)

    async with aiohttp.ClientSession(timeout=timeout) as session:
        for attempt in range(max_retries):
            try:
                async with session.get(image_url) as response:
                    if response.status == 200:
                        return await response.read()
                    logger.warning(f"Failed to download image from {image_url}: {response.status}")
                    last_error = f"HTTP {response.status}"
            except asyncio.TimeoutError as e:
                logger.warning(f"Timeout downloading image (attempt {attempt + 1}/{max_retries}): {image_url}")
                last_error = str(e) or "Timeout"
            except (aiohttp.ClientError, OSError) as e:
                logger.warning(f"Network error downloading image (attempt {attempt + 1}/{max_retries}): {e}")
                last_error = str(e)

            if attempt < max_retries - 1:
                wait_time = (2**attempt) + (random.random() * 0.5)
                logger.info(f"Retrying image download in {wait_time:.1f}s...")
                await asyncio.sleep(wait_time)

    logger.error(f"Failed to download image after {max_retries} attempts: {image_url}, last error: {last_error}")
    raise TransportError(f"Could not load product image {image_url}: {last_error}")


def _read_asset(reference: str, asset_dir: str) -> bytes:
    path = Path(asset_dir) / reference.lstrip("/")
    try:
        return path.read_bytes()
    except OSError as e:
        raise TransportError(f"Could not read product image {path}: {e}") from e


async def load_product_image(product: ProductDescriptor, asset_dir: Optional[str] = None) -> RasterImage:
    """Fetch a product's image.

    http(s) references are downloaded; anything else is a path relative to
    the asset directory.

    Raises:
        TransportError: the image could not be fetched
        DecodeError: the fetched bytes are not an image
    """
    if not product.image_url:
        raise TransportError(f"Product '{product.name}' has no image reference")

    reference = product.image_url
    if reference.startswith(("http://", "https://")):
        data = await _download_image(reference, max_retries=max(1, settings.image_download_retries))
    else:
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, _read_asset, reference, asset_dir or settings.asset_dir)

    image = RasterImage.from_bytes(data)
    logger.info(f"Loaded product image for '{product.name}' ({image.width}x{image.height})")
    return image
