"""
Shared pytest fixtures and configuration for all tests
"""
import io
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from PIL import Image

# Add the parent directory to the path so we can import roomstager without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))

from roomstager.services.geometry_service import RasterImage  # noqa: E402
from roomstager.services.placement_service import ProductCategory, ProductDescriptor  # noqa: E402


def encode_image(image: Image.Image, fmt: str = "JPEG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def image_response(data: bytes, mime_type: str = "image/png"):
    """A generate_content response carrying one inline image part"""
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)
    return SimpleNamespace(parts=[part], candidates=None)


def text_response(text: str):
    """A generate_content response with text and no image"""
    part = SimpleNamespace(inline_data=None, text=text)
    return SimpleNamespace(parts=[part], candidates=None)


class EchoSceneModels:
    """Stand-in for client.models that answers with the scene image it was sent.

    The scene part is already the padded square, so the pipeline sees a
    well-formed generated canvas.
    """

    def __init__(self):
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        scene_blob = contents[0].parts[1].inline_data
        return image_response(scene_blob.data, scene_blob.mime_type)


class ScriptedModels:
    """Stand-in for client.models that replays a fixed list of responses"""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def make_image():
    """Factory for RasterImage fixtures generated with PIL"""

    def _make(width: int, height: int, color="beige", fmt: str = "JPEG", mode: str = "RGB") -> RasterImage:
        return RasterImage.from_bytes(encode_image(Image.new(mode, (width, height), color=color), fmt))

    return _make


@pytest.fixture
def landscape_scene(make_image):
    """1600x900 room photo"""
    return make_image(1600, 900, color=(200, 180, 150))


@pytest.fixture
def portrait_scene(make_image):
    """900x1600 room photo"""
    return make_image(900, 1600, color=(150, 180, 200))


@pytest.fixture
def product_image(make_image):
    return make_image(400, 600, color=(30, 120, 40), fmt="PNG")


@pytest.fixture
def small_plant():
    return ProductDescriptor(name="Snake Plant", category=ProductCategory.PLANT, size_class="small")


@pytest.fixture
def gallery_tile():
    return ProductDescriptor(name="Botanical Gallery Set", category=ProductCategory.TILE, picture_count=4)


@pytest.fixture
def make_image_response():
    """Factory: generate_content response with an image of the given size"""

    def _make(width: int, height: int, color="white", fmt: str = "PNG"):
        data = encode_image(Image.new("RGB", (width, height), color=color), fmt)
        return image_response(data, Image.MIME[fmt])

    return _make


@pytest.fixture
def make_text_response():
    return text_response


@pytest.fixture
def echo_client():
    return SimpleNamespace(models=EchoSceneModels())


@pytest.fixture
def scripted_client():
    """Factory: a client whose generate_content returns (or raises) the given items in order"""

    def _make(*responses):
        return SimpleNamespace(models=ScriptedModels(responses))

    return _make


@pytest.fixture
def mock_google_ai_client():
    """Mock Google AI client for testing without API calls"""
    mock = MagicMock()
    mock.models.generate_content = MagicMock(return_value=text_response("no image"))
    return mock
