"""
Uploads, Stripe checkout and the Stripe webhook.
A completed purchase with a pending upload starts a batch job on the Celery worker.
"""
import json
import logging
from uuid import uuid4

import stripe
from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from portrait_studio.api.deps import get_alerts, get_runtime_config, get_storage, read_image_upload
from portrait_studio.core.config import settings
from portrait_studio.core.errors import InvalidRequest
from portrait_studio.db.session import get_db
from portrait_studio.schemas.payments import CheckoutIn, CheckoutOut, UploadOut
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.auth.jwt import Claims, get_current_user
from portrait_studio.services.generations.service import image_url
from portrait_studio.services.payments.service import PaymentService
from portrait_studio.services.telegram.client import TelegramClient
from portrait_studio.storage.base import BlobStore
from portrait_studio.workers.tasks.batch_job import run_batch_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"])

WEBHOOK_TOLERANCE_SECONDS = 300


@router.post("/uploads", response_model=UploadOut)
def upload_source_image(
    image: UploadFile | None = File(default=None),
    user: Claims = Depends(get_current_user),
    blob_store: BlobStore = Depends(get_storage),
) -> UploadOut:
    """Store a source image so a later purchase can reference it as originalPath."""
    upload = read_image_upload(image)
    path = blob_store.put(f"uploads/{user.sub}/{uuid4()}.{upload.extension}", upload.content, upload.mime_type)
    return UploadOut(path=path, image_url=image_url(path))


@router.post("/stripe/checkout", response_model=CheckoutOut)
def create_checkout(
    body: CheckoutIn,
    user: Claims = Depends(get_current_user),
    db: Session = Depends(get_db),
    config: RuntimeConfig = Depends(get_runtime_config),
    alerts: TelegramClient = Depends(get_alerts),
) -> CheckoutOut:
    url, session_id = PaymentService(db, config, alerts).create_checkout(
        user.sub,
        body.type,
        original_path=body.original_path,
        prompt_id=body.prompt_id,
        remix_from=body.remix_from,
    )
    return CheckoutOut(url=url, session_id=session_id)


def dispatch_batch_job(job_id: str) -> None:
    try:
        run_batch_job.delay(job_id)
    except Exception:
        # The job stays 'processing'; resume_stuck_jobs re-enqueues it.
        logger.exception("batch_job_dispatch_failed", extra={"job_id": job_id})


def _apply_checkout_completed(db: Session, config: RuntimeConfig, alerts: TelegramClient, session: dict) -> dict:
    outcome = PaymentService(db, config, alerts).handle_checkout_completed(session)
    if outcome is None:
        return {"status": "ignored"}
    job_id = outcome.job.job_id if outcome.job else None
    if job_id and not outcome.duplicate:
        dispatch_batch_job(job_id)
    return {"status": "duplicate" if outcome.duplicate else "processed", "jobId": job_id}


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    config: RuntimeConfig = Depends(get_runtime_config),
    alerts: TelegramClient = Depends(get_alerts),
) -> dict:
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise InvalidRequest("Missing signature")
    if not settings.stripe_webhook_secret:
        raise InvalidRequest("Webhook secret is not configured")

    payload = (await request.body()).decode("utf-8")
    try:
        stripe.WebhookSignature.verify_header(
            payload, signature, settings.stripe_webhook_secret, tolerance=WEBHOOK_TOLERANCE_SECONDS
        )
        event = json.loads(payload)
    except (stripe.SignatureVerificationError, ValueError) as e:
        logger.warning("stripe_webhook_rejected", extra={"error": str(e)})
        raise InvalidRequest(f"Webhook Error: {e}") from e

    if event.get("type") != "checkout.session.completed":
        return {"received": True, "status": "ignored"}

    session = (event.get("data") or {}).get("object") or {}
    result = await run_in_threadpool(_apply_checkout_completed, db, config, alerts, session)
    return {"received": True, **result}
