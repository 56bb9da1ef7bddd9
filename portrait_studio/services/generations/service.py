"""
Single-image generation: reserve credit, resolve prompt, call Gemini, enrich, persist.

Any failure after a successful reservation and before the Generation Record is
committed refunds the reserved credit and re-raises.
"""
import logging
import os
from dataclasses import dataclass
from urllib.parse import quote
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portrait_studio.core.errors import InvalidRequest, StoreUnavailable
from portrait_studio.models.generation import Generation, GenerationStatus
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.entitlements.ledger import EntitlementLedger, Reservation
from portrait_studio.services.events.service import EventService
from portrait_studio.services.image_generation.base import (
    GenerationBlocked,
    ImageGenerationError,
    ImageGenerationProvider,
    ImageGenerationRequest,
)
from portrait_studio.services.image_generation.enrichment import attempt, extract_tags, summarize
from portrait_studio.services.prompts.resolver import PresetService, PromptResolver, ResolvedPrompt, StyleSelector
from portrait_studio.services.users.service import UserService
from portrait_studio.storage.base import BlobStore
from portrait_studio.utils.metrics import generations_total

logger = logging.getLogger(__name__)

UNLIMITED = "Unlimited"


def image_url(path: str) -> str:
    return f"/api/image/{quote(path, safe='')}"


def upload_extension(filename: str | None, allowed: set[str]) -> str:
    ext = os.path.splitext(filename or "")[1].lower() or ".jpg"
    if ext not in allowed:
        raise InvalidRequest(f"Unsupported image type: {ext}")
    return ext.lstrip(".")


@dataclass(frozen=True)
class GenerationResult:
    gen_id: str
    remaining_credits: int | str
    image_url: str
    summary: str
    tags: list[str]


class GenerationService:
    def __init__(
        self,
        db: Session,
        blob_store: BlobStore,
        provider: ImageGenerationProvider,
        config: RuntimeConfig,
        ledger: EntitlementLedger | None = None,
    ) -> None:
        self.db = db
        self.blob_store = blob_store
        self.provider = provider
        self.config = config
        self.ledger = ledger or EntitlementLedger(db, config)
        self.resolver = PromptResolver(db, config)
        self.events = EventService(db)

    def generate(
        self,
        user_id: str,
        image_content: bytes,
        extension: str,
        mime_type: str | None = None,
        selector: StyleSelector | None = None,
    ) -> GenerationResult:
        # 1. Paid gate; InsufficientCredits leaves storage untouched.
        reservation = self.ledger.check_and_reserve(user_id)
        # 2.
        resolved = self.resolver.resolve(selector)
        gen_id = str(uuid4())
        try:
            generation = self._produce(user_id, gen_id, image_content, extension, mime_type, resolved)
        except Exception as e:
            self._compensate(reservation, gen_id, e)
            if isinstance(e, SQLAlchemyError):
                raise StoreUnavailable("Record Store unavailable") from e
            if isinstance(e, OSError):
                raise StoreUnavailable("Blob Store unavailable") from e
            raise

        generations_total.labels(status="completed").inc()
        self._record_counters(user_id, resolved)
        self.events.log(
            "generate_completed",
            user_id,
            {"generation_id": gen_id, "provenance": resolved.provenance, "token_cost": generation.token_cost},
        )
        logger.info(
            "generation_completed",
            extra={"user_id": user_id, "generation_id": gen_id, "provenance": resolved.provenance},
        )
        return GenerationResult(
            gen_id=gen_id,
            remaining_credits=UNLIMITED if reservation.is_unlimited else reservation.credits_remaining,
            image_url=image_url(generation.result_path),
            summary=generation.summary,
            tags=list(generation.tags or []),
        )

    def _produce(
        self,
        user_id: str,
        gen_id: str,
        image_content: bytes,
        extension: str,
        mime_type: str | None,
        resolved: ResolvedPrompt,
    ) -> Generation:
        # 3. Original is kept even if generation fails.
        upload_path = self.blob_store.put(f"uploads/{user_id}/{gen_id}.{extension}", image_content, mime_type)

        # 4.
        response = self.provider.generate(
            ImageGenerationRequest(
                prompt=resolved.text,
                image_content=image_content,
                mime_type=mime_type or "image/jpeg",
                model=self.config.image_model,
            )
        )

        # 6. Advisory enrichment.
        summary = attempt(summarize, self.provider, resolved.text, self.config.text_model, label="summary")
        tags = attempt(extract_tags, self.provider, resolved.text, self.config.text_model, label="tags")

        # 7.
        result_path = self.blob_store.put(
            f"generations/{user_id}/{gen_id}.png", response.image_content, response.mime_type
        )
        generation = Generation(
            id=gen_id,
            user_id=user_id,
            original_path=upload_path,
            result_path=result_path,
            prompt=resolved.text,
            summary=summary.unwrap_or(resolved.text),
            tags=tags.unwrap_or([]),
            status=GenerationStatus.COMPLETED.value,
            votes_count=0,
            likes_count=0,
            bookmarks_count=0,
            is_public=False,
            remixed_from=resolved.remixed_from,
            stored_prompt_id=resolved.stored_preset_id,
            model=response.model,
            token_cost=int(response.token_count or 0),
        )
        self.db.add(generation)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return generation

    def _compensate(self, reservation: Reservation, gen_id: str, error: Exception) -> None:
        status = "blocked" if isinstance(error, GenerationBlocked) else "failed"
        detail = error.detail if isinstance(error, ImageGenerationError) else {}
        generations_total.labels(status=status).inc()
        logger.warning(
            "generation_failed",
            extra={
                "user_id": reservation.user_id,
                "generation_id": gen_id,
                "status": status,
                "error": str(error),
                "finish_reason": detail.get("finish_reason"),
                "block_reason": detail.get("block_reason"),
            },
        )
        try:
            self.ledger.refund(reservation)
        except Exception:
            logger.exception(
                "generation_refund_failed",
                extra={"user_id": reservation.user_id, "generation_id": gen_id},
            )
        else:
            logger.info("generation_refunded", extra={"user_id": reservation.user_id, "generation_id": gen_id})
        self.events.log("generate_failed", reservation.user_id, {"generation_id": gen_id, "error": str(error)[:500]})

    def _record_counters(self, user_id: str, resolved: ResolvedPrompt) -> None:
        """Lifetime generation count and stored preset usage; best effort."""
        try:
            UserService(self.db).increment_generation_count(user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("generation_count_failed", extra={"user_id": user_id, "error": str(e)})
        if resolved.stored_preset_id:
            try:
                PresetService(self.db).increment_usage(resolved.stored_preset_id)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning(
                    "preset_usage_failed",
                    extra={"preset_id": resolved.stored_preset_id, "error": str(e)},
                )
