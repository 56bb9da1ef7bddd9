"""
Shared fixtures. Environment is set before any portrait_studio import so the
settings singleton and the engine point at an in-memory SQLite database.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["FIREBASE_PROJECT_ID"] = "portrait-test"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_BASE_PATH"] = tempfile.mkdtemp(prefix="portrait-blobs-")
os.environ["BATCH_VARIANT_DELAY_SECONDS"] = "0"
os.environ["GEMINI_API_KEY"] = ""
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_ALERT_CHAT_ID"] = ""

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402

from portrait_studio.db.init_db import create_tables, drop_tables  # noqa: E402
from portrait_studio.db.session import SessionLocal  # noqa: E402
from portrait_studio.models.user import User  # noqa: E402
from portrait_studio.services.app_settings.settings_service import RuntimeConfig  # noqa: E402
from portrait_studio.services.auth.jwt import Claims, get_current_user  # noqa: E402
from portrait_studio.services.telegram.client import TelegramClient  # noqa: E402
from portrait_studio.storage.local import LocalBlobStore  # noqa: E402
from tests.support import FakeImageClient  # noqa: E402


@pytest.fixture
def db():
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def config() -> RuntimeConfig:
    return RuntimeConfig(
        image_model="gemini-test-image",
        text_model="gemini-test-text",
        batch_variant_delay_seconds=0,
    )


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(str(tmp_path / "blobs"))


@pytest.fixture
def fake_provider() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def silent_alerts() -> TelegramClient:
    return TelegramClient(token="", chat_id="")


@pytest.fixture
def make_user(db):
    def _make_user(user_id: str = "user-1", **kwargs) -> User:
        now = datetime.now(timezone.utc)
        values = {
            "email": f"{user_id}@example.com",
            "display_name": "Test User",
            "credits": 5,
            "last_credit_reset_at": now,
            "created_at": now,
            "updated_at": now,
        }
        values.update(kwargs)
        user = User(id=user_id, **values)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def current_user() -> Claims:
    return Claims(sub="user-1", email="user-1@example.com", name="Test User")


@pytest.fixture
def api_client(db, blob_store, fake_provider, silent_alerts, current_user):
    """TestClient with storage, Gemini, alerts and the signed-in user swapped for test doubles."""
    from fastapi.testclient import TestClient

    from portrait_studio.api.deps import get_alerts, get_image_provider, get_storage
    from portrait_studio.main import app

    app.dependency_overrides[get_storage] = lambda: blob_store
    app.dependency_overrides[get_image_provider] = lambda: fake_provider
    app.dependency_overrides[get_alerts] = lambda: silent_alerts
    app.dependency_overrides[get_current_user] = lambda: current_user
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
