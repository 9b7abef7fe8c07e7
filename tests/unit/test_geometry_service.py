"""
Unit tests for the geometry normalizer
Tests letterboxing onto the square canvas and cropping back to the original aspect ratio
"""
import base64
import io

import pytest
from PIL import Image, ImageDraw

from roomstager.core.exceptions import DecodeError, GeometryMismatchError, SurfaceError
from roomstager.services.geometry_service import (
    ContentRect,
    OriginalDimensions,
    RasterImage,
    compute_content_rect,
    normalize,
    restore,
)


def _pixel(raster: RasterImage, x: int, y: int):
    return raster.open().getpixel((x, y))


def _close(actual, expected, tolerance=30):
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


def _two_tone(width: int, height: int) -> RasterImage:
    """Left half red, right half blue"""
    image = Image.new("RGB", (width, height), (220, 30, 30))
    ImageDraw.Draw(image).rectangle([width // 2, 0, width, height], fill=(30, 30, 220))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return RasterImage.from_bytes(buffer.getvalue())


class TestComputeContentRect:
    """Tests for the shared content rectangle computation"""

    @pytest.mark.unit
    def test_landscape_scene_rect(self):
        """Test the 1600x900 scene at 1024 spans the full width, centered vertically"""
        rect = compute_content_rect(1600, 900, 1024)

        assert rect == ContentRect(offset_x=0, offset_y=224, content_width=1024, content_height=576)

    @pytest.mark.unit
    def test_portrait_scene_rect(self):
        """Test portrait sources span the full height, centered horizontally"""
        rect = compute_content_rect(900, 1600, 1024)

        assert rect == ContentRect(offset_x=224, offset_y=0, content_width=576, content_height=1024)

    @pytest.mark.unit
    def test_square_source_fills_canvas(self):
        """Test square sources have no padding at all"""
        rect = compute_content_rect(500, 500, 1024)

        assert rect == ContentRect(offset_x=0, offset_y=0, content_width=1024, content_height=1024)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "width,height",
        [(1600, 900), (900, 1600), (1234, 567), (3000, 2000), (640, 480), (1, 500), (500, 1), (1000, 999)],
    )
    @pytest.mark.parametrize("dimension", [256, 1000, 1024])
    def test_content_is_centered_and_keeps_aspect(self, width, height, dimension):
        """Test content stays inside the canvas, centered, with the source aspect ratio"""
        rect = compute_content_rect(width, height, dimension)

        assert rect.offset_x >= 0 and rect.offset_y >= 0
        assert min(rect.offset_x, rect.offset_y) == 0
        assert rect.offset_x + rect.content_width <= dimension
        assert rect.offset_y + rect.content_height <= dimension
        # Centering within one pixel of rounding
        assert abs((dimension - rect.content_width) - 2 * rect.offset_x) <= 1
        assert abs((dimension - rect.content_height) - 2 * rect.offset_y) <= 1

        if width > height:
            assert rect.content_width == dimension
            assert abs(rect.content_height - dimension * height / width) <= 1
        else:
            assert rect.content_height == dimension
            assert abs(rect.content_width - dimension * width / height) <= 1

    @pytest.mark.unit
    @pytest.mark.parametrize("width,height", [(0, 100), (100, 0), (-5, 10)])
    def test_invalid_dimensions_rejected(self, width, height):
        """Test degenerate sizes are reported as decode failures"""
        with pytest.raises(DecodeError):
            compute_content_rect(width, height, 1024)

    @pytest.mark.unit
    def test_canvas_percent_mapping(self):
        """Test scene percentages map onto the padded canvas"""
        rect = compute_content_rect(1600, 900, 1024)

        assert rect.to_canvas_percent(50, 50, 1024) == pytest.approx((50.0, 50.0))
        assert rect.to_canvas_percent(0, 0, 1024) == pytest.approx((0.0, 21.875))
        assert rect.to_canvas_percent(100, 100, 1024) == pytest.approx((100.0, 78.125))


class TestRasterImage:
    """Tests for decoding image payloads"""

    @pytest.mark.unit
    def test_from_bytes_reads_dimensions_and_mime(self, make_image):
        """Test header facts are read without trusting the caller"""
        image = make_image(320, 200, fmt="PNG")

        assert (image.width, image.height) == (320, 200)
        assert image.mime_type == "image/png"

    @pytest.mark.unit
    def test_from_base64_accepts_data_url(self, make_image):
        """Test data URL prefix is stripped and its MIME type kept"""
        source = make_image(64, 32)
        data_url = f"data:image/jpeg;base64,{base64.b64encode(source.data).decode()}"

        image = RasterImage.from_base64(data_url)

        assert image.mime_type == "image/jpeg"
        assert image.dimensions == OriginalDimensions(width=64, height=32)

    @pytest.mark.unit
    def test_from_base64_accepts_bare_payload(self, make_image):
        """Test bare base64 without prefix is accepted"""
        source = make_image(10, 20, fmt="PNG")

        image = RasterImage.from_base64(source.to_base64())

        assert image.data == source.data
        assert image.mime_type == "image/png"

    @pytest.mark.unit
    def test_garbage_bytes_raise_decode_error(self):
        """Test undecodable bytes are rejected"""
        with pytest.raises(DecodeError) as exc_info:
            RasterImage.from_bytes(b"definitely not an image")

        assert exc_info.value.stage == "decode"

    @pytest.mark.unit
    def test_exif_rotation_swaps_reported_dimensions(self):
        """Test photos with an EXIF rotation report their displayed size"""
        image = Image.new("RGB", (300, 100), "white")
        exif = image.getexif()
        exif[0x0112] = 6
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", exif=exif)

        raster = RasterImage.from_bytes(buffer.getvalue())

        assert (raster.width, raster.height) == (100, 300)
        assert raster.open().size == (100, 300)


class TestNormalize:
    """Tests for letterboxing onto the square canvas"""

    @pytest.mark.unit
    def test_landscape_scene_letterboxed(self, landscape_scene):
        """Test the 1600x900 scene lands in a 1024 square with black bands above and below"""
        normalized = normalize(landscape_scene, 1024)

        assert (normalized.image.width, normalized.image.height) == (1024, 1024)
        assert normalized.image.mime_type == "image/jpeg"
        assert normalized.original == OriginalDimensions(width=1600, height=900)
        assert normalized.content_rect == ContentRect(0, 224, 1024, 576)
        assert normalized.target_dimension == 1024

        assert _close(_pixel(normalized.image, 512, 100), (0, 0, 0))
        assert _close(_pixel(normalized.image, 512, 924), (0, 0, 0))
        assert _close(_pixel(normalized.image, 512, 512), (200, 180, 150))

    @pytest.mark.unit
    def test_portrait_scene_pillarboxed(self, portrait_scene):
        """Test portrait scenes get black bands left and right"""
        normalized = normalize(portrait_scene, 512)

        assert normalized.content_rect.offset_x > 0
        assert normalized.content_rect.offset_y == 0
        assert _close(_pixel(normalized.image, 20, 256), (0, 0, 0))
        assert _close(_pixel(normalized.image, 256, 256), (150, 180, 200))

    @pytest.mark.unit
    def test_transparent_png_converted(self, make_image):
        """Test RGBA product images are flattened and re-encoded as JPEG"""
        source = make_image(200, 100, color=(255, 0, 0, 128), fmt="PNG", mode="RGBA")

        normalized = normalize(source, 256)

        assert normalized.image.mime_type == "image/jpeg"
        assert normalized.image.open().mode == "RGB"

    @pytest.mark.unit
    def test_transparent_pixels_become_black(self, make_image):
        """Test fully transparent areas of a cut-out product show the black fill"""
        source = make_image(200, 200, color=(255, 255, 255, 0), fmt="PNG", mode="RGBA")

        normalized = normalize(source, 256)

        assert _close(_pixel(normalized.image, 128, 128), (0, 0, 0))

    @pytest.mark.unit
    def test_cut_out_product_keeps_opaque_pixels(self):
        """Test an opaque subject on a transparent background is drawn over black"""
        image = Image.new("RGBA", (200, 200), (255, 255, 255, 0))
        ImageDraw.Draw(image).rectangle([50, 50, 150, 150], fill=(30, 160, 40, 255))
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")

        normalized = normalize(RasterImage.from_bytes(buffer.getvalue()), 200)

        assert _close(_pixel(normalized.image, 100, 100), (30, 160, 40))
        assert _close(_pixel(normalized.image, 20, 20), (0, 0, 0))

    @pytest.mark.unit
    def test_palette_transparency_becomes_black(self):
        """Test palette images with a transparent index are composited too"""
        image = Image.new("P", (100, 100), 0)
        image.putpalette([255, 255, 255] + [0, 0, 0] * 255)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG", transparency=0)

        normalized = normalize(RasterImage.from_bytes(buffer.getvalue()), 100)

        assert _close(_pixel(normalized.image, 50, 50), (0, 0, 0))

    @pytest.mark.unit
    def test_restore_still_returns_rgb(self, make_image):
        """Test decoding for the restore step always drops alpha"""
        source = make_image(64, 64, color=(10, 20, 30, 0), fmt="PNG", mode="RGBA")

        assert source.open().mode == "RGB"
        assert source.open(keep_alpha=True).mode == "RGBA"

    @pytest.mark.unit
    def test_undecodable_source_raises_decode_error(self):
        """Test a payload that claims to be an image but is not"""
        bogus = RasterImage(data=b"not an image", mime_type="image/jpeg", width=10, height=10)

        with pytest.raises(DecodeError):
            normalize(bogus, 256)

    @pytest.mark.unit
    def test_zero_canvas_raises_surface_error(self, make_image):
        """Test an unusable canvas size is a surface failure"""
        with pytest.raises(SurfaceError) as exc_info:
            normalize(make_image(100, 50), 0)

        assert exc_info.value.stage == "surface"


class TestRestore:
    """Tests for cropping generated canvases back to the original aspect ratio"""

    @pytest.mark.unit
    def test_round_trip_preserves_aspect_and_content(self):
        """Test normalize then restore of an untouched canvas returns the original picture"""
        source = _two_tone(800, 400)
        normalized = normalize(source, 512)

        restored = restore(normalized.image, normalized.original, normalized.content_rect, 512)

        assert (restored.width, restored.height) == (512, 256)
        assert restored.width / restored.height == pytest.approx(source.aspect_ratio, abs=0.01)
        assert _close(_pixel(restored, 128, 128), (220, 30, 30))
        assert _close(_pixel(restored, 384, 128), (30, 30, 220))
        # No padding left at the edges
        assert not _close(_pixel(restored, 128, 1), (0, 0, 0))
        assert not _close(_pixel(restored, 384, 254), (0, 0, 0))

    @pytest.mark.unit
    def test_landscape_scene_restored_to_1024x576(self, landscape_scene):
        """Test the 1600x900 example ends at 1024x576"""
        normalized = normalize(landscape_scene, 1024)

        restored = restore(normalized.image, normalized.original, normalized.content_rect, 1024)

        assert (restored.width, restored.height) == (1024, 576)

    @pytest.mark.unit
    def test_rect_is_recomputed_not_trusted(self, landscape_scene):
        """Test a stale content rect does not change the crop"""
        normalized = normalize(landscape_scene, 1024)
        stale = ContentRect(offset_x=10, offset_y=10, content_width=100, content_height=100)

        restored = restore(normalized.image, normalized.original, stale, 1024)

        assert (restored.width, restored.height) == (1024, 576)

    @pytest.mark.unit
    def test_non_square_generated_image_rejected(self, make_image):
        """Test a generated image that is not square cannot be cropped"""
        generated = make_image(1024, 768)

        with pytest.raises(GeometryMismatchError) as exc_info:
            restore(generated, OriginalDimensions(1600, 900), None, 1024)

        assert exc_info.value.stage == "restore"

    @pytest.mark.unit
    def test_square_of_other_size_is_rescaled(self, make_image):
        """Test a square of the wrong side is cropped with a proportionally rescaled rect"""
        generated = make_image(512, 512)

        restored = restore(generated, OriginalDimensions(1600, 900), ContentRect(0, 224, 1024, 576), 1024)

        assert (restored.width, restored.height) == (512, 288)

    @pytest.mark.unit
    def test_strict_mode_rejects_wrong_size(self, make_image):
        """Test strict geometry refuses a square of the wrong side"""
        generated = make_image(512, 512)

        with pytest.raises(GeometryMismatchError):
            restore(generated, OriginalDimensions(1600, 900), None, 1024, strict=True)
