from .base import (
    GenerationBlocked,
    GenerationFailed,
    ImageGenerationError,
    ImageGenerationProvider,
    ImageGenerationRequest,
    ImageGenerationResponse,
    TextGenerationResponse,
)
from .factory import create_image_client

__all__ = [
    "GenerationBlocked",
    "GenerationFailed",
    "ImageGenerationError",
    "ImageGenerationProvider",
    "ImageGenerationRequest",
    "ImageGenerationResponse",
    "TextGenerationResponse",
    "create_image_client",
]
