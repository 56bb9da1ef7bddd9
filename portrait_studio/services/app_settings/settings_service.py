"""Runtime overrides stored in the app_settings row, and the per-request configuration snapshot."""
import logging

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portrait_studio.models.app_settings import AppSettings

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
    """Immutable configuration passed into the ledger, resolver and orchestrators."""

    model_config = {"frozen": True}

    image_model: str
    text_model: str
    default_prompt: str = "A stylized portrait"
    free_tier_credits: int = 5
    credit_reset_days: int = 30
    credit_pack_amount: int = 10
    subscription_duration_days: int = 30
    ledger_cas_max_attempts: int = 5
    batch_variant_delay_seconds: float = 1.5
    job_status_lookup_limit: int = 10
    job_recent_window_seconds: int = 60


class AppSettingsService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self) -> AppSettings | None:
        return self.db.query(AppSettings).filter(AppSettings.id == 1).first()

    def get_or_create(self) -> AppSettings:
        row = self.get()
        if row:
            return row
        row = AppSettings(id=1)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def snapshot(self, settings) -> RuntimeConfig:
        """
        Build the configuration snapshot: env settings overlaid with the app_settings row.
        A Record Store error falls back to env values.
        """
        try:
            row = self.get()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("app_settings_unavailable", extra={"error": str(e)})
            row = None
        return RuntimeConfig(
            image_model=(row.image_model if row and row.image_model else settings.gemini_image_model),
            text_model=(row.text_model if row and row.text_model else settings.gemini_text_model),
            default_prompt=settings.default_prompt,
            free_tier_credits=settings.free_tier_credits,
            credit_reset_days=settings.credit_reset_days,
            credit_pack_amount=settings.credit_pack_amount,
            subscription_duration_days=settings.subscription_duration_days,
            ledger_cas_max_attempts=settings.ledger_cas_max_attempts,
            batch_variant_delay_seconds=settings.batch_variant_delay_seconds,
            job_status_lookup_limit=settings.job_status_lookup_limit,
            job_recent_window_seconds=settings.job_recent_window_seconds,
        )
