"""
PaymentService: hosted checkout sessions and checkout-completed webhooks.

Responsibilities:
- Create Stripe Checkout sessions for a credit pack or a subscription
- Apply a completed checkout exactly once per checkout_session_id
  (credit grant or subscription window, spend total, optional batch job)
"""
import logging
from dataclasses import dataclass
from typing import Any

import stripe
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from portrait_studio.core.config import settings
from portrait_studio.core.errors import InvalidRequest, PaymentProviderError, ResourceNotFound, StoreUnavailable
from portrait_studio.models.job import Job
from portrait_studio.models.payment import Payment
from portrait_studio.models.user import User
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.entitlements.ledger import EntitlementLedger
from portrait_studio.services.events.service import EventService
from portrait_studio.services.jobs.service import JobService
from portrait_studio.services.telegram.client import TelegramClient
from portrait_studio.utils.metrics import batch_jobs_total
from portrait_studio.utils.time import utcnow

logger = logging.getLogger(__name__)

PURCHASE_CREDIT_PACK = "credit_pack"
PURCHASE_SUBSCRIPTION = "subscription"
CHECKOUT_MODES = {
    PURCHASE_CREDIT_PACK: "payment",
    PURCHASE_SUBSCRIPTION: "subscription",
}


def upload_prefix(user_id: str) -> str:
    return f"uploads/{user_id}/"


@dataclass(frozen=True)
class CheckoutOutcome:
    payment: Payment
    job: Job | None
    duplicate: bool = False


class PaymentService:
    def __init__(self, db: Session, config: RuntimeConfig, alerts: TelegramClient | None = None):
        self.db = db
        self.config = config
        self.alerts = alerts or TelegramClient()
        self.ledger = EntitlementLedger(db, config)
        self.events = EventService(db)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def _price_id(self, purchase_type: str) -> str:
        price_id = {
            PURCHASE_CREDIT_PACK: settings.stripe_credit_pack_price_id,
            PURCHASE_SUBSCRIPTION: settings.stripe_subscription_price_id,
        }.get(purchase_type)
        if price_id is None:
            raise InvalidRequest(f"Unknown purchase type: {purchase_type}")
        if not price_id:
            raise InvalidRequest(f"Purchase type {purchase_type} is not configured")
        return price_id

    def create_checkout(
        self,
        user_id: str,
        purchase_type: str,
        original_path: str | None = None,
        prompt_id: str | None = None,
        remix_from: str | None = None,
        base_url: str | None = None,
    ) -> tuple[str, str]:
        """Returns (redirect url, checkout session id)."""
        price_id = self._price_id(purchase_type)
        if original_path and not original_path.startswith(upload_prefix(user_id)):
            raise InvalidRequest("originalPath must be one of your uploads")

        metadata = {
            "userId": user_id,
            "type": purchase_type,
            "originalPath": original_path,
            "promptId": prompt_id,
            "remixFrom": remix_from,
        }
        base = (base_url or settings.public_base_url).rstrip("/")
        try:
            session = stripe.checkout.Session.create(
                api_key=settings.stripe_secret_key,
                mode=CHECKOUT_MODES[purchase_type],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=f"{base}{settings.checkout_success_path}?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base}{settings.checkout_cancel_path}",
                client_reference_id=user_id,
                metadata={k: v for k, v in metadata.items() if v},
            )
        except stripe.StripeError as e:
            logger.warning("checkout_create_failed", extra={"user_id": user_id, "error": str(e)})
            raise PaymentProviderError("Could not start checkout") from e
        logger.info(
            "checkout_created",
            extra={"user_id": user_id, "purchase_type": purchase_type, "checkout_session_id": session.id},
        )
        return session.url, session.id

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    def get_by_checkout_session(self, checkout_session_id: str) -> Payment | None:
        return (
            self.db.query(Payment)
            .filter(Payment.checkout_session_id == checkout_session_id)
            .one_or_none()
        )

    def _duplicate(self, payment: Payment) -> CheckoutOutcome:
        job = JobService(self.db).get(payment.job_id) if payment.job_id else None
        logger.info(
            "checkout_duplicate",
            extra={"user_id": payment.user_id, "checkout_session_id": payment.checkout_session_id},
        )
        return CheckoutOutcome(payment=payment, job=job, duplicate=True)

    def handle_checkout_completed(self, session: dict[str, Any]) -> CheckoutOutcome | None:
        """
        Apply a checkout.session.completed payload. Idempotent on the session id:
        a redelivery returns the prior outcome without a second grant or job.
        A claimed but unfulfilled session (the Record Store failed after the grant)
        is finished by the redelivery instead.
        Returns None when the session carries no user (not ours).
        """
        checkout_session_id = session.get("id")
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId") or session.get("client_reference_id")
        if not checkout_session_id or not user_id:
            logger.warning("checkout_without_user", extra={"checkout_session_id": checkout_session_id})
            return None

        existing = self.get_by_checkout_session(checkout_session_id)
        if existing:
            if existing.fulfilled_at is None:
                logger.warning(
                    "checkout_fulfilment_resumed",
                    extra={"user_id": existing.user_id, "checkout_session_id": checkout_session_id},
                )
                return self._fulfil(existing, metadata)
            return self._duplicate(existing)

        if self.db.query(User.id).filter(User.id == user_id).scalar() is None:
            raise ResourceNotFound("User not found")

        purchase_type = metadata.get("type") or PURCHASE_CREDIT_PACK
        if purchase_type not in CHECKOUT_MODES:
            raise InvalidRequest(f"Unknown purchase type: {purchase_type}")

        # Claim the session id first; the unique constraint settles concurrent redeliveries.
        payment = Payment(
            user_id=user_id,
            checkout_session_id=checkout_session_id,
            purchase_type=purchase_type,
            amount_total=int(session.get("amount_total") or 0),
            currency=session.get("currency"),
        )
        self.db.add(payment)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self._duplicate(self.get_by_checkout_session(checkout_session_id))

        try:
            if purchase_type == PURCHASE_SUBSCRIPTION:
                expires_at = self.ledger.activate_subscription(user_id, self.config.subscription_duration_days)
                logger.info(
                    "subscription_activated",
                    extra={"user_id": user_id, "expires_at": expires_at.isoformat()},
                )
            else:
                balance = self.ledger.grant_credits(user_id, self.config.credit_pack_amount)
                logger.info("credits_granted", extra={"user_id": user_id, "credits": balance})
        except Exception:
            # Release the claim so the processor's retry can apply the purchase.
            self.db.rollback()
            self.db.delete(payment)
            self.db.commit()
            raise

        return self._fulfil(payment, metadata)

    def _fulfil(self, payment: Payment, metadata: dict[str, Any]) -> CheckoutOutcome:
        """
        One transaction after the grant: spend total, optional Job Record, fulfilled_at.
        The conditional update on fulfilled_at lets exactly one delivery do this.
        """
        payment_id = payment.id
        checkout_session_id = payment.checkout_session_id
        user_id = payment.user_id
        purchase_type = payment.purchase_type
        amount_total = payment.amount_total
        credits = self.config.credit_pack_amount if purchase_type == PURCHASE_CREDIT_PACK else 0
        original_path = metadata.get("originalPath")
        job = None
        try:
            result = self.db.execute(
                update(Payment)
                .where(Payment.id == payment_id, Payment.fulfilled_at.is_(None))
                .values(fulfilled_at=utcnow(), credits_granted=credits)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return self._duplicate(self.db.get(Payment, payment_id))

            self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(total_spent=User.total_spent + amount_total)
                .execution_options(synchronize_session=False)
            )
            if original_path and original_path.startswith(upload_prefix(user_id)):
                job = JobService(self.db).create_job(
                    user_id=user_id,
                    source_path=original_path,
                    prompt_id=metadata.get("promptId"),
                    remix_from=metadata.get("remixFrom"),
                    commit=False,
                )
                self.db.execute(
                    update(Payment)
                    .where(Payment.id == payment_id)
                    .values(job_id=job.job_id)
                    .execution_options(synchronize_session=False)
                )
            elif original_path:
                logger.warning("checkout_foreign_upload_ignored", extra={"user_id": user_id, "path": original_path})
            self.db.commit()
        except SQLAlchemyError as e:
            # Claim and grant stay; fulfilled_at is still null, so the redelivery finishes this.
            self.db.rollback()
            logger.exception(
                "checkout_fulfilment_failed",
                extra={"user_id": user_id, "checkout_session_id": checkout_session_id, "error": str(e)},
            )
            raise StoreUnavailable("Record Store unavailable") from e

        self.db.refresh(payment)
        if job is not None:
            self.db.refresh(job)
            batch_jobs_total.labels(status="created").inc()

        logger.info(
            "payment_success",
            extra={
                "user_id": user_id,
                "checkout_session_id": checkout_session_id,
                "purchase_type": purchase_type,
                "job_id": job.job_id if job else None,
            },
        )
        self.events.log(
            "payment_success",
            user_id,
            {"purchase_type": purchase_type, "amount_total": amount_total, "currency": payment.currency},
        )
        self.alerts.send_alert(
            f"💰 New purchase: `{purchase_type}` {amount_total / 100:.2f} {(payment.currency or '').upper()} by `{user_id}`"
        )
        return CheckoutOutcome(payment=payment, job=job)
