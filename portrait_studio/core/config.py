"""
Application configuration.
All settings are loaded from environment variables (and .env).
Runtime-tunable values (model names) live in the app_settings row, see
portrait_studio.services.app_settings.settings_service.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated. Empty = default list in main.py.
    cors_origins: str = ""
    public_base_url: str = "http://localhost:5173"

    # ===========================================
    # DATABASE (Record Store)
    # ===========================================
    database_url: str  # Required, no default

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # IDENTITY PROVIDER (Firebase Auth)
    # ===========================================
    firebase_project_id: str  # Required, no default
    firebase_jwks_url: str = (
        "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
    )
    firebase_issuer_base: str = "https://securetoken.google.com"

    # ===========================================
    # GOOGLE GEMINI (Generative Image Service)
    # ===========================================
    gemini_api_key: str = ""  # Get from https://aistudio.google.com/apikey
    gemini_api_endpoint: str = "https://generativelanguage.googleapis.com"
    gemini_image_model: str = "gemini-2.5-flash-image"
    # Low-token model for summary/tags
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_timeout: float = 180.0  # generation + image body download
    gemini_text_timeout: float = 30.0
    # JSON array of {category, threshold} or empty.
    gemini_safety_settings: str = ""

    # ===========================================
    # STRIPE (Payment Processor)
    # ===========================================
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_credit_pack_price_id: str = ""
    stripe_subscription_price_id: str = ""
    checkout_success_path: str = "/success"
    checkout_cancel_path: str = "/cancel"

    # ===========================================
    # CREDIT ECONOMY
    # ===========================================
    free_tier_credits: int = 5
    credit_reset_days: int = 30
    credit_pack_amount: int = 10
    subscription_duration_days: int = 30
    ledger_cas_max_attempts: int = 5
    default_prompt: str = "A stylized portrait"

    # ===========================================
    # BATCH JOBS
    # ===========================================
    batch_variant_delay_seconds: float = 1.5
    job_status_lookup_limit: int = 10
    job_recent_window_seconds: int = 60
    job_stuck_minutes: int = 15

    # ===========================================
    # STORAGE (Blob Store)
    # ===========================================
    storage_backend: str = "local"  # local, s3
    storage_base_path: str = "/data/blobs"
    s3_endpoint: str | None = None  # R2: https://<account>.r2.cloudflarestorage.com
    s3_region: str | None = None
    s3_bucket: str = ""
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    max_file_size_mb: int = 10
    allowed_image_extensions: str = ".jpg,.jpeg,.png,.webp"

    # ===========================================
    # NOTIFICATIONS
    # ===========================================
    telegram_bot_token: str = ""
    telegram_alert_chat_id: str = ""
    http_client_timeout: float = 10.0

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("allowed_image_extensions")
    @classmethod
    def parse_extensions(cls, v: str) -> str:
        """Validate extensions format."""
        return v.lower().strip()

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("local", "s3"):
            raise ValueError("storage_backend must be 'local' or 's3'")
        return v

    @property
    def allowed_extensions_set(self) -> set[str]:
        """Get allowed extensions as a set."""
        return {ext.strip() for ext in self.allowed_image_extensions.split(",") if ext.strip()}

    @property
    def firebase_issuer(self) -> str:
        return f"{self.firebase_issuer_base.rstrip('/')}/{self.firebase_project_id}"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
