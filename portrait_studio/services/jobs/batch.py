"""
Batch Job Orchestrator: ten style variants of one source image after a purchase.

Variants run strictly in order with a pause between provider calls. Each
attempt advances the persisted cursor (next_variant_index), so a redelivered
task resumes where the previous worker stopped. A failed variant is skipped;
only setup failures (source image, prompt, store) fail the whole job.
"""
import logging
import mimetypes
import time
from typing import Callable
from uuid import uuid4

from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.orm import Session

from portrait_studio.models.job import Job
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.events.service import EventService
from portrait_studio.services.image_generation.base import (
    ImageGenerationError,
    ImageGenerationProvider,
    ImageGenerationRequest,
)
from portrait_studio.services.jobs.service import JobService
from portrait_studio.services.jobs.state import JobStatus, is_terminal
from portrait_studio.services.prompts.resolver import PromptResolver, StyleSelector
from portrait_studio.services.telegram.client import TelegramClient
from portrait_studio.storage.base import BlobStore
from portrait_studio.utils.metrics import batch_job_duration_seconds, batch_jobs_total, batch_variants_total

logger = logging.getLogger(__name__)

STYLE_VARIATIONS: tuple[str, ...] = (
    "cinematic lighting, film still, shallow depth of field",
    "digital art, highly detailed, vibrant colors",
    "oil painting, textured brush strokes, classical composition",
    "cyberpunk, neon lights, futuristic city background",
    "pencil sketch, graphite shading, hand-drawn lines",
    "anime style, cel shading, expressive features",
    "3D render, soft global illumination, octane render",
    "black and white monochrome photography, high contrast",
    "watercolor painting, soft washes, paper texture",
    "pop art, bold flat colors, halftone dots",
)

ERROR_SOURCE_MISSING = "source_missing"
ERROR_UNEXPECTED = "unexpected_error"


def build_variant_prompts(base_prompt: str) -> list[str]:
    return [f"{base_prompt}, {suffix}" for suffix in STYLE_VARIATIONS]


def batch_result_path(user_id: str, job_id: str, gen_id: str) -> str:
    return f"generations/{user_id}/batch_{job_id}/{gen_id}.png"


class BatchJobRunner:
    def __init__(
        self,
        db: Session,
        blob_store: BlobStore,
        provider: ImageGenerationProvider,
        config: RuntimeConfig,
        alerts: TelegramClient | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.db = db
        self.blob_store = blob_store
        self.provider = provider
        self.config = config
        self.alerts = alerts or TelegramClient()
        self.sleep = sleep
        self.jobs = JobService(db)
        self.events = EventService(db)

    def run(self, job_id: str) -> Job | None:
        job = self.jobs.get(job_id)
        if job is None:
            logger.warning("batch_job_not_found", extra={"job_id": job_id})
            return None
        if is_terminal(job.status):
            logger.info("batch_job_already_finished", extra={"job_id": job_id, "status": job.status})
            return job

        start = time.monotonic()
        user_id = job.user_id
        try:
            source = self.blob_store.get(job.source_path)
            if source is None:
                logger.warning(
                    "batch_source_missing",
                    extra={"job_id": job_id, "user_id": user_id, "path": job.source_path},
                )
                self._fail(job_id, user_id, ERROR_SOURCE_MISSING)
                return self.jobs.get(job_id)

            resolved = PromptResolver(self.db, self.config).resolve(
                StyleSelector(prompt_id=job.prompt_id, remix_from=job.remix_from)
            )
            prompts = build_variant_prompts(resolved.text)[: job.total_images]
            mime_type = mimetypes.guess_type(job.source_path)[0] or "image/jpeg"

            if not self._run_variants(job, prompts, source, mime_type):
                # Another runner advanced the cursor; it owns completion.
                logger.info("batch_runner_superseded", extra={"job_id": job_id})
                return self.jobs.get(job_id)

            if self.jobs.finish(job_id, JobStatus.COMPLETED):
                batch_jobs_total.labels(status="completed").inc()
                batch_job_duration_seconds.observe(time.monotonic() - start)
                finished = self.jobs.get(job_id)
                logger.info(
                    "batch_job_completed",
                    extra={
                        "job_id": job_id,
                        "user_id": user_id,
                        "completed": finished.completed_images,
                        "total": finished.total_images,
                    },
                )
                self.events.log(
                    "batch_completed",
                    user_id,
                    {"job_id": job_id, "completed": finished.completed_images},
                )
                return finished
            return self.jobs.get(job_id)
        except SoftTimeLimitExceeded:
            # Cursor is persisted and the job stays processing; the watchdog re-enqueues it.
            self.db.rollback()
            logger.warning("batch_job_time_limit", extra={"job_id": job_id, "user_id": user_id})
            raise
        except Exception as e:
            self.db.rollback()
            logger.exception("batch_job_error", extra={"job_id": job_id, "user_id": user_id, "error": str(e)})
            self._fail(job_id, user_id, ERROR_UNEXPECTED)
            return self.jobs.get(job_id)

    def _run_variants(self, job: Job, prompts: list[str], source: bytes, mime_type: str) -> bool:
        """Attempt every variant from the persisted cursor. False if another runner took over."""
        results = list(job.results or [])
        first = True
        for index in range(job.next_variant_index, len(prompts)):
            if not first and self.config.batch_variant_delay_seconds > 0:
                self.sleep(self.config.batch_variant_delay_seconds)
            first = False

            try:
                response = self.provider.generate(
                    ImageGenerationRequest(
                        prompt=prompts[index],
                        image_content=source,
                        mime_type=mime_type,
                        model=self.config.image_model,
                    )
                )
                path = self.blob_store.put(
                    batch_result_path(job.user_id, job.job_id, str(uuid4())),
                    response.image_content,
                    response.mime_type,
                )
            except (ImageGenerationError, OSError, ValueError) as e:
                batch_variants_total.labels(status="skipped").inc()
                logger.warning(
                    "batch_variant_skipped",
                    extra={"job_id": job.job_id, "variant_index": index, "error": str(e)},
                )
                if not self.jobs.skip_variant(job.job_id, index):
                    return False
                continue

            if not self.jobs.record_variant(job.job_id, index, results, path):
                return False
            results.append(path)
            batch_variants_total.labels(status="succeeded").inc()
            logger.info(
                "batch_variant_completed",
                extra={"job_id": job.job_id, "variant_index": index, "completed": len(results)},
            )
        return True

    def _fail(self, job_id: str, user_id: str, error_code: str) -> None:
        try:
            if not self.jobs.finish(job_id, JobStatus.FAILED, error_code=error_code):
                return
        except Exception:
            self.db.rollback()
            logger.exception("batch_job_finalize_failed", extra={"job_id": job_id})
            return
        batch_jobs_total.labels(status="failed").inc()
        self.events.log("batch_failed", user_id, {"job_id": job_id, "error_code": error_code})
        self.alerts.send_alert(f"⚠️ Batch job `{job_id}` failed ({error_code}) for user `{user_id}`")
