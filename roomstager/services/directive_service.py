"""
Placement directives for the image-generation model.

A directive bundles the two normalized images with the instruction text and
knows how to render itself into google-genai request contents.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from google.genai import types

from roomstager.services.geometry_service import NormalizedImage
from roomstager.services.placement_service import ProductCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositionDirective:
    """Everything sent to the model in one generation call"""

    product: NormalizedImage
    scene: NormalizedImage
    instruction: str
    category: ProductCategory

    def to_parts(self) -> List[types.Part]:
        """Product image first, scene second, text last. The prompt refers to the images in this order."""
        return [
            types.Part(inline_data=types.Blob(mime_type=self.product.image.mime_type, data=self.product.image.data)),
            types.Part(inline_data=types.Blob(mime_type=self.scene.image.mime_type, data=self.scene.image.data)),
            types.Part.from_text(text=self.instruction),
        ]

    def to_contents(self) -> List[types.Content]:
        return [types.Content(role="user", parts=self.to_parts())]


class PlacementPrompts:
    """Building blocks of the placement instruction"""

    @staticmethod
    def get_role() -> str:
        return (
            "**Role:**\n"
            "You are a visual composition expert specializing in product placement. Your task is to take a "
            "product image (plant or gallery wall) and seamlessly integrate it into a room scene, placing it "
            "logically based on the product's category."
        )

    @staticmethod
    def get_input_description(category: ProductCategory) -> str:
        return (
            "**Specifications:**\n"
            "-   **Product to add:**\n"
            "    The first image provided. It may be surrounded by black padding or background, which you should "
            "ignore and treat as transparent and only keep the product.\n"
            "-   **Room scene to use:**\n"
            "    The second image provided. It may also be surrounded by black padding, which you should ignore.\n"
            f"-   **Product Category:** {ProductCategory(category).value}"
        )

    @staticmethod
    def get_placement_section(rule: str, target_section: str = "") -> str:
        lines = [
            "-   **Placement Instructions (Crucial):**",
            f"    {rule}",
        ]
        if target_section:
            lines.append(target_section)
        lines.extend(
            [
                "    -   You should only place the product once in the most logical location.",
                "    -   Do not add any other items or objects - only place the product that was provided.",
            ]
        )
        return "\n".join(lines)

    @staticmethod
    def get_final_requirements() -> str:
        return (
            "-   **Final Image Requirements:**\n"
            "    -   The output image's style, lighting, shadows, reflections, and camera perspective must exactly "
            "match the original scene.\n"
            "    -   Do not just copy and paste the product. You must intelligently re-render it to fit the context. "
            "Adjust the product's perspective and orientation to its most natural position, scale it "
            "appropriately, and ensure it casts realistic shadows according to the scene's light sources.\n"
            "    -   The product must have proportional realism. A small plant cannot be bigger than a sofa, and a "
            "gallery wall should be appropriately sized for the wall space.\n"
            "    -   You must not return the original scene image without product placement. The product must "
            "always be present in the composite image.\n"
            "    -   Do not add any other items, decorations, or objects beyond the single product provided.\n"
            "    -   Keep the square canvas and the black padding exactly where they are in the room scene."
        )

    @staticmethod
    def get_output_format() -> str:
        return "The output should ONLY be the final, composed image. Do not add any text or explanation."


def _get_grid_position(x_percent: float, y_percent: float) -> Tuple[str, str, str]:
    """Describe a canvas position as a cell of a 3x3 grid."""
    if x_percent < 33:
        h_cell, h_desc = "LEFT", "left side"
    elif x_percent < 67:
        h_cell, h_desc = "CENTER", "center"
    else:
        h_cell, h_desc = "RIGHT", "right side"

    if y_percent < 33:
        v_cell, v_desc = "TOP", "upper part"
    elif y_percent < 67:
        v_cell, v_desc = "MID", "middle"
    else:
        v_cell, v_desc = "BOT", "lower part"

    return f"{v_cell}-{h_cell}", h_desc, v_desc


def build_target_section(scene: NormalizedImage, position: Tuple[float, float]) -> str:
    """Target position text. The model sees the padded canvas, so coordinates are given on it."""
    canvas_x, canvas_y = scene.content_rect.to_canvas_percent(position[0], position[1], scene.target_dimension)
    grid_cell, h_desc, v_desc = _get_grid_position(canvas_x, canvas_y)
    return (
        f"    -   Target location: grid cell {grid_cell} ({v_desc}, {h_desc}) of the room scene image, "
        f"centered near X={canvas_x:.0f}%, Y={canvas_y:.0f}% measured across the whole square image. "
        "Place the product at the nearest surface that makes physical sense for it around that point."
    )


def assemble(
    product: NormalizedImage,
    scene: NormalizedImage,
    rule: str,
    category: ProductCategory,
    position: Optional[Tuple[float, float]] = None,
) -> CompositionDirective:
    """Build the full directive for one generation call.

    position is an optional (x_percent, y_percent) of the original scene,
    produced by the spatial placement policy.
    """
    target_section = build_target_section(scene, position) if position is not None else ""

    instruction = "\n".join(
        [
            "",
            PlacementPrompts.get_role(),
            "",
            PlacementPrompts.get_input_description(category),
            PlacementPrompts.get_placement_section(rule, target_section),
            PlacementPrompts.get_final_requirements(),
            "",
            PlacementPrompts.get_output_format(),
            "",
        ]
    )

    logger.info(f"Assembled {ProductCategory(category).value} directive ({len(instruction)} chars, targeted={position is not None})")
    return CompositionDirective(product=product, scene=scene, instruction=instruction, category=ProductCategory(category))
