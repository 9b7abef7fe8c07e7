"""
Geometry normalization for the composition pipeline.

The generation model behaves best with a fixed square input, so every image is
letterboxed onto a black DxD canvas before it is sent:

    source (W x H)  --normalize-->  D x D canvas, content centered
    generated D x D --restore---->  content rect cropped back out (W:H aspect)

Both directions derive the content rectangle from the same function
(compute_content_rect), which is what keeps pad -> generate -> crop consistent.
"""
import base64
import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from roomstager.core.exceptions import DecodeError, GeometryMismatchError, SurfaceError

logger = logging.getLogger(__name__)

# Padding colour. Pure black rarely carries meaning in room photos and the
# directive tells the model to ignore it.
PADDING_COLOR = (0, 0, 0)
OUTPUT_FORMAT = "JPEG"
OUTPUT_MIME_TYPE = "image/jpeg"
DEFAULT_JPEG_QUALITY = 95


@dataclass(frozen=True)
class RasterImage:
    """Encoded image bytes plus the facts the pipeline needs about them"""

    data: bytes
    mime_type: str
    width: int
    height: int

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: Optional[str] = None) -> "RasterImage":
        """Wrap raw bytes, reading dimensions and format from the image header."""
        try:
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
                # EXIF-rotated photos report their stored size; use the displayed one
                if _has_rotation(image):
                    width, height = height, width
                detected = Image.MIME.get(image.format or "")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(f"Could not decode image data ({len(data)} bytes): {e}") from e

        return cls(data=data, mime_type=mime_type or detected or "application/octet-stream", width=width, height=height)

    @classmethod
    def from_base64(cls, image_data: str) -> "RasterImage":
        """Accept either a bare base64 string or a data URL."""
        mime_type = None
        if image_data.startswith("data:"):
            header, _, image_data = image_data.partition(",")
            mime_type = header[len("data:"):].split(";")[0] or None

        try:
            raw = base64.b64decode(image_data, validate=False)
        except ValueError as e:
            raise DecodeError(f"Image payload is not valid base64: {e}") from e

        return cls.from_bytes(raw, mime_type=mime_type)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def dimensions(self) -> "OriginalDimensions":
        return OriginalDimensions(width=self.width, height=self.height)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    def open(self, keep_alpha: bool = False) -> Image.Image:
        """Decode into an upright RGB PIL image.

        With keep_alpha, images carrying transparency come back as RGBA so the
        caller can composite them.
        """
        try:
            image = Image.open(io.BytesIO(self.data))
            image.load()
            image = ImageOps.exif_transpose(image)
            target_mode = "RGBA" if keep_alpha and _has_transparency(image) else "RGB"
            if image.mode != target_mode:
                image = image.convert(target_mode)
            return image
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(f"Could not decode {self.mime_type} image: {e}") from e


@dataclass(frozen=True)
class OriginalDimensions:
    width: int
    height: int


@dataclass(frozen=True)
class ContentRect:
    """Where the real (non-padding) content sits inside the square canvas"""

    offset_x: int
    offset_y: int
    content_width: int
    content_height: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """PIL crop box (left, upper, right, lower)."""
        return (
            self.offset_x,
            self.offset_y,
            self.offset_x + self.content_width,
            self.offset_y + self.content_height,
        )

    def to_canvas_percent(self, x_percent: float, y_percent: float, target_dimension: int) -> Tuple[float, float]:
        """Map a position given in percent of the original scene onto the padded canvas."""
        canvas_x = self.offset_x + self.content_width * x_percent / 100.0
        canvas_y = self.offset_y + self.content_height * y_percent / 100.0
        return canvas_x * 100.0 / target_dimension, canvas_y * 100.0 / target_dimension


@dataclass(frozen=True)
class NormalizedImage:
    image: RasterImage
    content_rect: ContentRect
    original: OriginalDimensions
    target_dimension: int


def compute_content_rect(width: int, height: int, target_dimension: int) -> ContentRect:
    """Fit a width x height source inside a square canvas, centered.

    Landscape sources span the full canvas width, portrait and square sources
    span the full height. Sizes are rounded to whole pixels and never drop
    below one pixel.
    """
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has invalid dimensions {width}x{height}")

    aspect_ratio = width / height
    if aspect_ratio > 1:
        content_width = target_dimension
        content_height = max(1, min(target_dimension, round(target_dimension / aspect_ratio)))
    else:
        content_height = target_dimension
        content_width = max(1, min(target_dimension, round(target_dimension * aspect_ratio)))

    return ContentRect(
        offset_x=(target_dimension - content_width) // 2,
        offset_y=(target_dimension - content_height) // 2,
        content_width=content_width,
        content_height=content_height,
    )


def _has_rotation(image: Image.Image) -> bool:
    try:
        return image.getexif().get(0x0112, 1) in (5, 6, 7, 8)
    except (AttributeError, OSError, ValueError):
        return False


def _has_transparency(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info


def _encode(image: Image.Image, quality: int) -> RasterImage:
    buffer = io.BytesIO()
    image.save(buffer, format=OUTPUT_FORMAT, quality=quality)
    return RasterImage(data=buffer.getvalue(), mime_type=OUTPUT_MIME_TYPE, width=image.width, height=image.height)


def _new_canvas(target_dimension: int) -> Image.Image:
    if target_dimension <= 0:
        raise SurfaceError(f"Cannot create a {target_dimension}x{target_dimension} canvas")
    try:
        return Image.new("RGB", (target_dimension, target_dimension), PADDING_COLOR)
    except (MemoryError, ValueError) as e:
        raise SurfaceError(f"Could not allocate a {target_dimension}x{target_dimension} canvas: {e}") from e


def normalize(source: RasterImage, target_dimension: int, quality: int = DEFAULT_JPEG_QUALITY) -> NormalizedImage:
    """Letterbox an image onto a black square canvas, re-encoded as JPEG.

    Raises:
        DecodeError: the source bytes are not a decodable image
        SurfaceError: the canvas could not be allocated
    """
    image = source.open(keep_alpha=True)
    original = OriginalDimensions(width=image.width, height=image.height)
    rect = compute_content_rect(original.width, original.height, target_dimension)

    canvas = _new_canvas(target_dimension)
    if image.size != (rect.content_width, rect.content_height):
        image = image.resize((rect.content_width, rect.content_height), Image.Resampling.LANCZOS)
    # Transparent pixels show the black canvas underneath
    mask = image.getchannel("A") if image.mode == "RGBA" else None
    canvas.paste(image, (rect.offset_x, rect.offset_y), mask)

    logger.info(
        f"Normalized {original.width}x{original.height} to {target_dimension}x{target_dimension} "
        f"(content {rect.content_width}x{rect.content_height} at {rect.offset_x},{rect.offset_y})"
    )
    return NormalizedImage(
        image=_encode(canvas, quality),
        content_rect=rect,
        original=original,
        target_dimension=target_dimension,
    )


def restore(
    generated: RasterImage,
    original: OriginalDimensions,
    content_rect: Optional[ContentRect],
    target_dimension: int,
    strict: bool = False,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> RasterImage:
    """Crop the padding back off a generated square.

    The crop rectangle is always recomputed from the original aspect ratio;
    content_rect is only used as a cross-check.

    Raises:
        GeometryMismatchError: the generated image is not square, or (strict)
            its side differs from target_dimension
    """
    image = generated.open()

    if image.width != image.height:
        raise GeometryMismatchError(
            f"Generated image is {image.width}x{image.height}, expected a square {target_dimension}x{target_dimension} canvas"
        )

    side = image.width
    if side != target_dimension:
        if strict:
            raise GeometryMismatchError(f"Generated image is {side}x{side}, expected {target_dimension}x{target_dimension}")
        logger.warning(f"Generated image is {side}x{side} instead of {target_dimension}x{target_dimension}, rescaling crop")

    rect = compute_content_rect(original.width, original.height, side)
    if content_rect is not None and side == target_dimension and rect != content_rect:
        logger.warning(f"Recomputed content rect {rect} differs from recorded {content_rect}")

    cropped = image.crop(rect.box)
    logger.info(f"Restored {side}x{side} to {cropped.width}x{cropped.height} (original {original.width}x{original.height})")
    return _encode(cropped, quality)
