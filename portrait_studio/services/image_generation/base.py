"""
Types and the provider interface shared by the Gemini client, the generation
service and the batch runner.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from portrait_studio.core.errors import ServiceError


@dataclass
class ImageGenerationRequest:
    """Instruction text plus one input image."""
    prompt: str
    image_content: bytes
    mime_type: str = "image/jpeg"
    model: str | None = None


@dataclass
class ImageGenerationResponse:
    image_content: bytes
    model: str
    provider: str
    mime_type: str = "image/png"
    token_count: int = 0


@dataclass
class TextGenerationResponse:
    text: str
    model: str
    token_count: int = 0


class ImageGenerationError(ServiceError):
    """Provider call failed. `detail` carries failure_type, http_status and Gemini reasons."""

    status_code = 502
    code = "generation_failed"

    def __init__(self, message: str, detail: dict[str, Any] | None = None, *, hint: str | None = None):
        super().__init__(message, hint=hint)
        self.detail = detail or {}


class GenerationBlocked(ImageGenerationError):
    """Provider safety filter rejected the prompt or the image."""

    status_code = 422
    code = "generation_blocked"
    DEFAULT_HINT = "The photo or style was blocked by the safety filter. Try a different photo or style."

    def __init__(self, message: str, detail: dict[str, Any] | None = None, *, hint: str | None = None):
        super().__init__(f"Generation blocked: {message}", detail, hint=hint or self.DEFAULT_HINT)


class GenerationFailed(ImageGenerationError):
    """Any other provider or transport failure; message carries the provider reason."""


class ImageGenerationProvider(ABC):
    provider_name: str = ""

    @abstractmethod
    def is_available(self) -> bool:
        """False when credentials are missing; calls then fail with GenerationFailed."""

    @abstractmethod
    def generate(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        """One stylized image. Raises GenerationBlocked or GenerationFailed."""

    @abstractmethod
    def generate_text(self, prompt: str, model: str | None = None) -> TextGenerationResponse:
        """Low-token text-only call (summaries, tags). Raises GenerationFailed."""
