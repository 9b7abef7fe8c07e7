"""
Google AI Studio service for product placement image generation
"""
import asyncio
import base64
import binascii
import logging
import time
from datetime import datetime
from typing import Any, Optional, Tuple

import httpx
from google import genai
from google.genai import errors, types

from roomstager.core.config import settings
from roomstager.core.exceptions import DecodeError, NoImageReturned, TransportError
from roomstager.services.directive_service import CompositionDirective
from roomstager.services.geometry_service import RasterImage

logger = logging.getLogger(__name__)


class GoogleAIImageService:
    """Sends composition directives to a Gemini image model.

    One non-streaming call per directive. No retries: a failure is reported
    to the caller, who decides whether to run the whole composition again.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Any = None):
        """
        Args:
            api_key: Google AI key, defaults to settings.google_ai_api_key
            model: image model name, defaults to settings.google_ai_image_model
            client: pre-built genai.Client (or a stand-in exposing models.generate_content)
        """
        self.api_key = api_key if api_key is not None else settings.google_ai_api_key
        self.model = model or settings.google_ai_image_model
        self.usage_stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "empty_responses": 0,
            "total_processing_time": 0.0,
            "last_reset": datetime.now(),
        }

        if client is not None:
            self.genai_client = client
            self.genai_configured = True
        elif self.api_key:
            self.genai_client = genai.Client(api_key=self.api_key)
            self.genai_configured = True

            if len(self.api_key) > 12:
                masked_key = f"{self.api_key[:8]}...{self.api_key[-4:]}"
                logger.info(f"Google AI API Key loaded: {masked_key}")
        else:
            self.genai_client = None
            self.genai_configured = False
            logger.warning("Google AI API key not configured - image generation will not be available")

        logger.info(f"Google AI image service initialized (model={self.model})")

    async def generate_composite(self, directive: CompositionDirective, timeout: Optional[float] = None) -> RasterImage:
        """Run one generation call and return the image it produced.

        Args:
            directive: images and instruction to send
            timeout: optional limit in seconds, imposed by the caller

        Raises:
            TransportError: service unreachable, API error, timeout, or no API key
            NoImageReturned: the model answered without an image part
        """
        if not self.genai_configured:
            raise TransportError("Google AI API key is not configured")

        contents = directive.to_contents()
        config = types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"])

        def _run_generate():
            """Run the blocking generate_content call in a separate thread"""
            return self.genai_client.models.generate_content(model=self.model, contents=contents, config=config)

        self.usage_stats["total_requests"] += 1
        start_time = time.time()
        logger.info(f"Sending {directive.category.value} placement directive to {self.model}")

        try:
            loop = asyncio.get_running_loop()
            call = loop.run_in_executor(None, _run_generate)
            response = await (asyncio.wait_for(call, timeout=timeout) if timeout else call)
        except asyncio.TimeoutError as e:
            self.usage_stats["failed_requests"] += 1
            logger.error(f"Image generation timed out after {timeout} seconds")
            raise TransportError(f"Image generation timed out after {timeout} seconds") from e
        except errors.APIError as e:
            self.usage_stats["failed_requests"] += 1
            logger.error(f"Google AI API error {e.code}: {e.message}")
            raise TransportError(f"Image service error {e.code}: {e.message}") from e
        except (httpx.HTTPError, OSError) as e:
            self.usage_stats["failed_requests"] += 1
            logger.error(f"Google AI request failed: {e}")
            raise TransportError(f"Could not reach the image service: {e}") from e

        processing_time = time.time() - start_time
        self.usage_stats["total_processing_time"] += processing_time
        logger.info(f"Received response in {processing_time:.2f}s")

        try:
            extracted = self._extract_image(response)
            if extracted is None:
                logger.error("Model response did not contain an image part")
                raise NoImageReturned()

            image_bytes, mime_type = extracted
            image = RasterImage.from_bytes(image_bytes, mime_type=mime_type)
        except NoImageReturned:
            self.usage_stats["empty_responses"] += 1
            raise
        except DecodeError as e:
            # Undecodable model output is an upstream failure, not a client input error
            self.usage_stats["empty_responses"] += 1
            logger.error(f"Model returned an undecodable image: {e.message}")
            raise NoImageReturned("The AI model returned an image that could not be decoded. Please try again.") from e

        self.usage_stats["successful_requests"] += 1
        logger.info(f"Received image data ({image.mime_type}, {image.width}x{image.height}, {len(image_bytes)} bytes)")
        return image

    def _extract_image(self, response: Any) -> Optional[Tuple[bytes, str]]:
        """Pull the first inline image out of a generate_content response."""
        # The SDK may return parts directly on response or nested in candidates
        parts = None
        if getattr(response, "parts", None):
            parts = response.parts
        elif getattr(response, "candidates", None):
            content = getattr(response.candidates[0], "content", None)
            parts = getattr(content, "parts", None)

        if not parts:
            logger.warning(f"Image generation response has no parts: {type(response).__name__}")
            return None

        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is not None and inline_data.data:
                mime_type = getattr(inline_data, "mime_type", None) or "image/png"
                return self._decode_inline_data(inline_data.data), mime_type
            if getattr(part, "text", None):
                logger.info(f"Gemini text response: {part.text[:200]}")

        return None

    @staticmethod
    def _decode_inline_data(data: Any) -> bytes:
        """Inline data arrives as raw image bytes, or as base64 text in some SDK versions.

        Raises:
            NoImageReturned: the payload is neither raw image bytes nor valid base64
        """
        try:
            if isinstance(data, str):
                return base64.b64decode(data, validate=True)

            # Raw PNG: 89504e47, raw JPEG: ffd8ff, raw WebP: 52494646, raw GIF: 47494638
            first_hex = bytes(data[:4]).hex()
            if first_hex.startswith(("89504e47", "ffd8ff", "52494646", "47494638")):
                return bytes(data)

            logger.info("Base64 string bytes detected in inline data, decoding")
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            logger.error(f"Inline data is not an image payload: {e}")
            raise NoImageReturned("The AI model returned image data that could not be read. Please try again.") from e
