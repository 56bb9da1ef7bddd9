"""
Failure normalization for Gemini generateContent responses.
Decides whether a failure is a safety block (GenerationBlocked) or anything else (GenerationFailed).
"""
from enum import Enum
from typing import Any

from portrait_studio.services.image_generation.base import (
    GenerationBlocked,
    GenerationFailed,
    ImageGenerationError,
)


class FailureType(str, Enum):
    TRANSPORT = "transport"  # timeout, connection error, 429, 5xx
    CLIENT = "client"  # 4xx except 429
    PROMPT_BLOCKED = "prompt_blocked"  # promptFeedback.blockReason
    RESPONSE_BLOCKED = "response_blocked"  # safety finishReason
    NO_IMAGE = "no_image"  # 200 OK without an image part


# finishReason values that mean the safety filter stopped the response
SAFETY_FINISH_REASONS = frozenset({
    "SAFETY",
    "IMAGE_SAFETY",
    "BLOCKLIST",
    "PROHIBITED_CONTENT",
    "SPII",
    "IMAGE_PROHIBITED_CONTENT",
    "RECITATION",
})

BLOCKED_TYPES = frozenset({FailureType.PROMPT_BLOCKED, FailureType.RESPONSE_BLOCKED})


def failure_detail(result: dict[str, Any] | None) -> dict[str, Any]:
    """
    Pull the fields that explain a failed or empty response:
    block_reason, finish_reason, finish_message and the flagged safety categories.
    """
    if not isinstance(result, dict):
        return {}
    detail: dict[str, Any] = {}
    block_reason = (result.get("promptFeedback") or {}).get("blockReason")
    if block_reason:
        detail["block_reason"] = block_reason
    first = next(iter(result.get("candidates") or []), None) or {}
    for src, dst in (("finishReason", "finish_reason"), ("finishMessage", "finish_message")):
        if first.get(src):
            detail[dst] = first[src]
    flagged = [r.get("category") for r in first.get("safetyRatings") or [] if r.get("blocked")]
    if flagged:
        detail["blocked_categories"] = flagged
    return detail


def classify_failure(http_status: int | None, detail: dict[str, Any]) -> FailureType:
    if detail.get("block_reason"):
        return FailureType.PROMPT_BLOCKED
    if str(detail.get("finish_reason") or "").strip().upper() in SAFETY_FINISH_REASONS:
        return FailureType.RESPONSE_BLOCKED
    if http_status == 429 or (http_status is not None and http_status >= 500):
        return FailureType.TRANSPORT
    if http_status is not None and http_status >= 400:
        return FailureType.CLIENT
    return FailureType.NO_IMAGE if detail else FailureType.TRANSPORT


def to_generation_error(message: str, detail: dict[str, Any]) -> ImageGenerationError:
    failure_type = classify_failure(detail.get("http_status"), detail)
    detail = {**detail, "failure_type": failure_type.value}
    if failure_type in BLOCKED_TYPES:
        return GenerationBlocked(message, detail)
    return GenerationFailed(message, detail)
