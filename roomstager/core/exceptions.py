"""
Error taxonomy for the composition pipeline.

Every stage failure is raised as a CompositionError subclass carrying the
stage it came from, so callers can render one human-readable message.
"""
from typing import Optional


class CompositionError(Exception):
    """Base class for all pipeline failures"""

    stage = "composition"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage

    @property
    def user_message(self) -> str:
        return f"The {self.stage} step failed: {self.message}"


class DecodeError(CompositionError):
    """Input bytes could not be decoded as an image"""

    stage = "decode"


class SurfaceError(CompositionError):
    """A drawing canvas could not be allocated"""

    stage = "surface"


class TransportError(CompositionError):
    """The generation service or a product image host was unreachable or errored"""

    stage = "transport"


class NoImageReturned(CompositionError):
    """The generation service answered without an image part"""

    stage = "generation"

    def __init__(self, message: str = "The AI model did not return an image. Please try again.", stage: Optional[str] = None):
        super().__init__(message, stage)


class GeometryMismatchError(CompositionError):
    """The generated canvas does not have the geometry the restorer expects"""

    stage = "restore"
