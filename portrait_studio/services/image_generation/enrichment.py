"""
Best-effort summary and tags for a finished generation.

Both calls are advisory: a failure is captured in an Outcome and unwrapped
with a default, so the primary generation never fails because of them.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from portrait_studio.services.image_generation.base import ImageGenerationProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUMMARY_MAX_WORDS = 5
TAGS_MAX = 5

SUMMARY_INSTRUCTION = (
    "Summarize this image style description in at most 5 words. "
    "Reply with the phrase only, no punctuation or quotes.\n\nDescription: {prompt}"
)
TAGS_INSTRUCTION = (
    "Give 3 to 5 single-word lowercase tags for this image style description. "
    "Reply with the tags only, separated by commas.\n\nDescription: {prompt}"
)

_WORD_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value


def attempt(fn: Callable[..., T], *args, label: str = "", **kwargs) -> Outcome[T]:
    """Run fn and capture any exception as a failed Outcome (logged, never raised)."""
    try:
        return Outcome(value=fn(*args, **kwargs))
    except Exception as e:
        logger.warning("enrichment_failed", extra={"step": label or fn.__name__, "error": str(e)})
        return Outcome(error=e)


def clean_summary(text: str) -> str:
    words = text.strip().strip("\"'").replace("\n", " ").split()
    words = [w.strip(".,;:!?\"'") for w in words]
    words = [w for w in words if w]
    if not words:
        raise ValueError("empty summary")
    return " ".join(words[:SUMMARY_MAX_WORDS])


def clean_tags(text: str) -> list[str]:
    tags: list[str] = []
    for chunk in re.split(r"[,\n]", text.lower()):
        words = _WORD_RE.findall(chunk)
        if len(words) != 1:
            continue
        if words[0] not in tags:
            tags.append(words[0])
        if len(tags) == TAGS_MAX:
            break
    return tags


def summarize(provider: ImageGenerationProvider, prompt: str, model: str | None = None) -> str:
    response = provider.generate_text(SUMMARY_INSTRUCTION.format(prompt=prompt), model=model)
    return clean_summary(response.text)


def extract_tags(provider: ImageGenerationProvider, prompt: str, model: str | None = None) -> list[str]:
    response = provider.generate_text(TAGS_INSTRUCTION.format(prompt=prompt), model=model)
    return clean_tags(response.text)
