"""Liveness and readiness probes for the API container."""
import logging

import redis
from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from portrait_studio.api.deps import get_storage
from portrait_studio.core.config import settings
from portrait_studio.db.session import get_db
from portrait_studio.storage.base import BlobStore

logger = logging.getLogger(__name__)

router = APIRouter()

READINESS_PROBE_PATH = "health/ready-probe"


def _check_record_store(db: Session) -> None:
    db.execute(text("SELECT 1"))


def _check_broker() -> None:
    client = redis.Redis.from_url(settings.redis_url, socket_connect_timeout=2, socket_timeout=2)
    try:
        client.ping()
    finally:
        client.close()


def _check_blob_store(blob_store: BlobStore) -> None:
    # A miss is fine; only a backend error means not ready.
    blob_store.exists(READINESS_PROBE_PATH)


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/ready")
def readiness(
    response: Response,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_storage),
) -> dict:
    """503 with per-dependency status when the Record Store, the broker or the Blob Store is down."""
    checks = {
        "record_store": lambda: _check_record_store(db),
        "broker": _check_broker,
        "blob_store": lambda: _check_blob_store(blob_store),
    }
    results: dict[str, str] = {}
    for name, check in checks.items():
        try:
            check()
            results[name] = "ok"
        except Exception as e:
            logger.warning("readiness_check_failed", extra={"check": name, "error": str(e)})
            results[name] = "unavailable"
    ready = all(value == "ok" for value in results.values())
    if not ready:
        response.status_code = 503
    return {"status": "ready" if ready else "not_ready", "checks": results}
