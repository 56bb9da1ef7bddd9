"""Tests for GeminiImageClient against a mocked generateContent endpoint."""
import base64
import json
from unittest.mock import patch

import httpx
import pytest

from portrait_studio.services.image_generation.base import (
    GenerationBlocked,
    GenerationFailed,
    ImageGenerationRequest,
)
from portrait_studio.services.image_generation.factory import create_image_client
from portrait_studio.services.image_generation.failure_types import FailureType, classify_failure, failure_detail
from portrait_studio.services.image_generation.providers.gemini_nano_banana import GeminiImageClient

REAL_CLIENT = httpx.Client
IMAGE = b"\x89PNG generated"


def _client(**overrides) -> GeminiImageClient:
    config = {"api_key": "test-key", "model": "gemini-2.5-flash-image", "text_model": "gemini-2.5-flash"}
    config.update(overrides)
    return GeminiImageClient(config)


def _mock(handler):
    transport = httpx.MockTransport(handler)
    return patch(
        "portrait_studio.services.image_generation.providers.gemini_nano_banana.httpx.Client",
        side_effect=lambda timeout=None: REAL_CLIENT(transport=transport, timeout=timeout),
    )


def _request() -> ImageGenerationRequest:
    return ImageGenerationRequest(prompt="Make it anime", image_content=b"jpeg-bytes", mime_type="image/jpeg")


def _image_body(finish_reason="STOP"):
    return {
        "candidates": [{
            "content": {"parts": [
                {"text": "here you go"},
                {"inlineData": {"mimeType": "image/png", "data": base64.b64encode(IMAGE).decode()}},
            ]},
            "finishReason": finish_reason,
        }],
        "usageMetadata": {"totalTokenCount": 1290},
    }


class TestGenerate:
    def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_image_body())

        with _mock(handler):
            response = _client().generate(_request())

        assert response.image_content == IMAGE
        assert response.token_count == 1290
        assert response.provider == "gemini"
        assert "gemini-2.5-flash-image:generateContent" in seen["url"]
        assert "key=test-key" in seen["url"]
        parts = seen["body"]["contents"][0]["parts"]
        assert parts[0]["text"] == "Make it anime"
        assert base64.b64decode(parts[1]["inlineData"]["data"]) == b"jpeg-bytes"
        assert seen["body"]["generationConfig"]["responseModalities"] == ["IMAGE"]

    def test_request_model_overrides_default(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json=_image_body())

        request = _request()
        request.model = "gemini-3-pro-image-preview"
        with _mock(handler):
            response = _client().generate(request)
        assert "gemini-3-pro-image-preview:generateContent" in seen["url"]
        assert response.model == "gemini-3-pro-image-preview"

    def test_safety_settings_are_forwarded(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_image_body())

        settings = '[{"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"}]'
        with _mock(handler):
            _client(safety_settings=settings).generate(_request())
        assert seen["body"]["safetySettings"][0]["threshold"] == "BLOCK_ONLY_HIGH"

    def test_image_present_wins_over_finish_reason(self):
        with _mock(lambda r: httpx.Response(200, json=_image_body(finish_reason="MAX_TOKENS"))):
            assert _client().generate(_request()).image_content == IMAGE

    def test_prompt_block_is_blocked(self):
        body = {"promptFeedback": {"blockReason": "SAFETY"}}
        with _mock(lambda r: httpx.Response(200, json=body)):
            with pytest.raises(GenerationBlocked) as exc_info:
                _client().generate(_request())
        assert exc_info.value.status_code == 422
        assert exc_info.value.hint

    def test_safety_finish_without_image_is_blocked(self):
        body = {"candidates": [{"content": {"parts": []}, "finishReason": "IMAGE_SAFETY"}]}
        with _mock(lambda r: httpx.Response(200, json=body)):
            with pytest.raises(GenerationBlocked):
                _client().generate(_request())

    def test_no_image_is_failure(self):
        body = {"candidates": [{"content": {"parts": [{"text": "sorry"}]}, "finishReason": "STOP"}]}
        with _mock(lambda r: httpx.Response(200, json=body)):
            with pytest.raises(GenerationFailed) as exc_info:
                _client().generate(_request())
        assert "No image" in exc_info.value.message

    def test_no_candidates_is_failure(self):
        with _mock(lambda r: httpx.Response(200, json={})):
            with pytest.raises(GenerationFailed):
                _client().generate(_request())

    def test_http_error_carries_provider_message(self):
        body = {"error": {"code": 400, "message": "Image too large"}}
        with _mock(lambda r: httpx.Response(400, json=body)):
            with pytest.raises(GenerationFailed) as exc_info:
                _client().generate(_request())
        assert exc_info.value.message == "Image too large"
        assert exc_info.value.detail["http_status"] == 400
        assert exc_info.value.detail["failure_type"] == "client"

    def test_rate_limit_is_transport_failure(self):
        with _mock(lambda r: httpx.Response(429, text="slow down")):
            with pytest.raises(GenerationFailed) as exc_info:
                _client().generate(_request())
        assert exc_info.value.detail["failure_type"] == "transport"

    def test_connection_error_is_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with _mock(handler):
            with pytest.raises(GenerationFailed):
                _client().generate(_request())

    def test_missing_api_key(self):
        with pytest.raises(GenerationFailed):
            _client(api_key="").generate(_request())


class TestGenerateText:
    def test_success(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": " Neon Dream \n"}]}}],
                "usageMetadata": {"totalTokenCount": 40},
            })

        with _mock(handler):
            response = _client().generate_text("Summarize this")
        assert response.text == "Neon Dream"
        assert response.token_count == 40
        assert "gemini-2.5-flash:generateContent" in seen["url"]

    def test_empty_text_is_failure(self):
        with _mock(lambda r: httpx.Response(200, json={"candidates": []})):
            with pytest.raises(GenerationFailed):
                _client().generate_text("Summarize this")


class TestFactory:
    def test_create_from_settings(self):
        from portrait_studio.core.config import settings

        provider = create_image_client(settings)
        assert isinstance(provider, GeminiImageClient)
        assert provider.provider_name == "gemini"
        assert not provider.is_available()


class TestFailureClassification:
    def test_prompt_block_wins(self):
        detail = failure_detail({"promptFeedback": {"blockReason": "SAFETY"}})
        assert detail == {"block_reason": "SAFETY"}
        assert classify_failure(200, detail) == FailureType.PROMPT_BLOCKED

    def test_safety_finish_reason(self):
        result = {
            "candidates": [{
                "finishReason": "IMAGE_SAFETY",
                "safetyRatings": [
                    {"category": "HARM_CATEGORY_HARASSMENT", "blocked": True},
                    {"category": "HARM_CATEGORY_HATE_SPEECH"},
                ],
            }]
        }
        detail = failure_detail(result)
        assert detail["blocked_categories"] == ["HARM_CATEGORY_HARASSMENT"]
        assert classify_failure(None, detail) == FailureType.RESPONSE_BLOCKED

    def test_http_statuses(self):
        assert classify_failure(429, {}) == FailureType.TRANSPORT
        assert classify_failure(503, {}) == FailureType.TRANSPORT
        assert classify_failure(400, {}) == FailureType.CLIENT

    def test_plain_stop_without_image(self):
        detail = failure_detail({"candidates": [{"finishReason": "STOP"}]})
        assert classify_failure(None, detail) == FailureType.NO_IMAGE
        assert classify_failure(None, {}) == FailureType.TRANSPORT

    def test_non_dict_body(self):
        assert failure_detail([{"error": {}}]) == {}
