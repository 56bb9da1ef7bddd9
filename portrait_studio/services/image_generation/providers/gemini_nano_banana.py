"""
Gemini image generation (Google AI generateContent, "Nano Banana").
Uses generativelanguage.googleapis.com with api_key.
200 OK without an image part is never a silent success.
"""
import base64
import json
import logging
import time
from typing import Any

import httpx

from portrait_studio.services.image_generation.base import (
    GenerationFailed,
    ImageGenerationProvider,
    ImageGenerationRequest,
    ImageGenerationResponse,
    TextGenerationResponse,
)
from portrait_studio.services.image_generation.failure_types import failure_detail, to_generation_error
from portrait_studio.utils.metrics import gemini_request_duration_seconds, gemini_requests_total

logger = logging.getLogger(__name__)

TEXT_MAX_OUTPUT_TOKENS = 32


def _parse_safety_settings(value: Any) -> list[dict[str, Any]]:
    """Parse safety_settings from config (list of {category, threshold} or JSON string)."""
    if not value:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
            return parsed if isinstance(parsed, list) else []
        except json.JSONDecodeError:
            return []
    return []


def _token_count(result: dict[str, Any]) -> int:
    usage = result.get("usageMetadata") or {}
    try:
        return int(usage.get("totalTokenCount") or 0)
    except (TypeError, ValueError):
        return 0


class GeminiImageClient(ImageGenerationProvider):
    """Gemini image and text generation via Google AI generateContent API."""

    provider_name = "gemini"

    def __init__(self, config: dict) -> None:
        self.config = config
        self.api_key = (config.get("api_key") or "").strip()
        endpoint = (config.get("api_endpoint") or "https://generativelanguage.googleapis.com").rstrip("/")
        self.base_url = f"{endpoint}/v1beta/models"
        self.timeout = float(config.get("timeout", 180.0))
        self.text_timeout = float(config.get("text_timeout", 30.0))
        self.model_name = (config.get("model") or "gemini-2.5-flash-image").strip()
        self.text_model_name = (config.get("text_model") or "gemini-2.5-flash").strip()

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _post(self, kind: str, model: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        if not self.is_available():
            raise GenerationFailed("GEMINI_API_KEY is not configured")

        url = f"{self.base_url}/{model}:generateContent"
        start = time.monotonic()
        try:
            with httpx.Client(timeout=timeout) as client:
                resp = client.post(url, params={"key": self.api_key}, json=payload)
                resp.raise_for_status()
                result = resp.json()
        except httpx.HTTPStatusError as e:
            gemini_requests_total.labels(kind=kind, status=str(e.response.status_code)).inc()
            try:
                err_body = e.response.json()
            except ValueError:
                err_body = {}
            detail = failure_detail(err_body)
            detail["http_status"] = e.response.status_code
            error = err_body.get("error") if isinstance(err_body, dict) else None
            msg = (error or {}).get("message") or f"Gemini API error: {e.response.status_code}"
            raise to_generation_error(msg, detail) from e
        except (httpx.HTTPError, ValueError) as e:
            gemini_requests_total.labels(kind=kind, status="transport_error").inc()
            raise GenerationFailed(str(e) or e.__class__.__name__) from e
        finally:
            gemini_request_duration_seconds.labels(kind=kind).observe(time.monotonic() - start)

        gemini_requests_total.labels(kind=kind, status="200").inc()
        return result

    def generate(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        model = (request.model or self.model_name).strip() or self.model_name
        b64 = base64.standard_b64encode(request.image_content).decode("ascii")
        payload: dict[str, Any] = {
            "contents": [{
                "role": "user",
                "parts": [
                    {"text": request.prompt},
                    {"inlineData": {"mimeType": request.mime_type or "image/jpeg", "data": b64}},
                ],
            }],
            "generationConfig": {"responseModalities": ["IMAGE"]},
        }
        safety_settings = _parse_safety_settings(self.config.get("safety_settings"))
        if safety_settings:
            payload["safetySettings"] = safety_settings

        result = self._post("image", model, payload, self.timeout)

        # Block at request level (no candidates)
        prompt_feedback = result.get("promptFeedback") or {}
        if prompt_feedback.get("blockReason"):
            raise to_generation_error(prompt_feedback["blockReason"], failure_detail(result))

        candidates = result.get("candidates") or []
        if not candidates:
            raise to_generation_error("No candidates in Gemini response", failure_detail(result))

        c0 = candidates[0]
        image_part: dict[str, Any] | None = None
        for part in (c0.get("content") or {}).get("parts") or []:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and isinstance(inline.get("data"), str):
                image_part = inline
                break

        if image_part is None:
            detail = failure_detail(result)
            finish_reason = c0.get("finishReason") or ""
            if finish_reason and finish_reason != "STOP":
                msg = c0.get("finishMessage") or finish_reason
            else:
                msg = "No image returned from Gemini"
            logger.warning(
                "gemini_no_image",
                extra={"finish_reason": finish_reason or None, "block_reason": detail.get("block_reason")},
            )
            raise to_generation_error(msg, detail)

        return ImageGenerationResponse(
            image_content=base64.standard_b64decode(image_part["data"]),
            mime_type=image_part.get("mimeType") or "image/png",
            model=model,
            provider=self.provider_name,
            token_count=_token_count(result),
        )

    def generate_text(self, prompt: str, model: str | None = None) -> TextGenerationResponse:
        model = (model or self.text_model_name).strip() or self.text_model_name
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": TEXT_MAX_OUTPUT_TOKENS, "temperature": 0.2},
        }
        result = self._post("text", model, payload, self.text_timeout)
        candidates = result.get("candidates") or []
        parts = ((candidates[0].get("content") or {}).get("parts") or []) if candidates else []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()
        if not text:
            raise GenerationFailed("Empty text response from Gemini", failure_detail(result))
        return TextGenerationResponse(text=text, model=model, token_count=_token_count(result))
