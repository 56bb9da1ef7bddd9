"""Builds the image client from env settings. Gemini is the only backend."""
import logging

from portrait_studio.services.image_generation.base import ImageGenerationProvider
from portrait_studio.services.image_generation.providers.gemini_nano_banana import GeminiImageClient

logger = logging.getLogger(__name__)


def gemini_config(settings) -> dict:
    return {
        "api_key": settings.gemini_api_key,
        "api_endpoint": settings.gemini_api_endpoint,
        "timeout": settings.gemini_timeout,
        "text_timeout": settings.gemini_text_timeout,
        "model": settings.gemini_image_model,
        "text_model": settings.gemini_text_model,
        "safety_settings": settings.gemini_safety_settings or "",
    }


def create_image_client(settings) -> ImageGenerationProvider:
    """A client without an API key is still returned; its calls fail with GenerationFailed."""
    client = GeminiImageClient(gemini_config(settings))
    if not client.is_available():
        logger.warning("image_provider_not_configured", extra={"provider": client.provider_name})
    return client
