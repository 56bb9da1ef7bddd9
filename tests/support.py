"""Test doubles shared across test modules."""
from portrait_studio.services.image_generation.base import (
    ImageGenerationProvider,
    ImageGenerationRequest,
    ImageGenerationResponse,
    TextGenerationResponse,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-result"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-source"


class FakeImageClient(ImageGenerationProvider):
    """
    Stands in for Gemini. image_errors maps call index -> exception to raise;
    text_error makes every generate_text call fail.
    """

    def __init__(self, image_errors=None, text_error=None, summary="Neon Dream", tags="neon, city, portrait"):
        self.image_errors = dict(image_errors or {})
        self.text_error = text_error
        self.summary = summary
        self.tags = tags
        self.image_calls: list[ImageGenerationRequest] = []
        self.text_calls: list[str] = []
        self.on_generate = None

    def is_available(self) -> bool:
        return True

    def generate(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        index = len(self.image_calls)
        self.image_calls.append(request)
        if self.on_generate:
            self.on_generate(index, request)
        error = self.image_errors.get(index) or self.image_errors.get("*")
        if error:
            raise error
        return ImageGenerationResponse(
            image_content=PNG_BYTES,
            model=request.model or "fake-image",
            provider="fake",
            mime_type="image/png",
            token_count=1290,
        )

    def generate_text(self, prompt: str, model: str | None = None) -> TextGenerationResponse:
        self.text_calls.append(prompt)
        if self.text_error:
            raise self.text_error
        text = self.summary if "Summarize" in prompt else self.tags
        return TextGenerationResponse(text=text, model=model or "fake-text", token_count=12)
