"""
Structured JSON logging for the API and the Celery worker.
Services log snake_case event names and pass context through `extra`.
"""
import json
import logging
import re
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from portrait_studio.core.config import settings

# Context keys copied from `extra` into the JSON line.
CONTEXT_FIELDS = (
    "user_id", "generation_id", "job_id", "preset_id", "variant_index",
    "status", "error", "error_code", "credits", "completed", "total",
    "provenance", "finish_reason", "block_reason", "http_status", "status_code",
    "checkout_session_id", "purchase_type", "event_type", "path", "latency_ms", "check",
    "attempt", "expires_at", "provider", "step", "kind", "active",
)

# httpx logs full request URLs; the Gemini key travels as ?key=...
_SECRET_QUERY_RE = re.compile(r"([?&]key=)[^&\s\"']+")

# Chatty client libraries; their INFO lines carry URLs and connection details.
QUIET_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "urllib3", "stripe")


def redact(text: str) -> str:
    return _SECRET_QUERY_RE.sub(r"\1[REDACTED]", text)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": redact(record.getMessage()),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = redact(value) if isinstance(value, str) else value
        if record.exc_info:
            payload["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    formatter = JsonFormatter()
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream]
    if settings.log_file:
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    root.handlers = handlers
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
