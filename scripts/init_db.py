"""Create the Record Store tables and the app_settings row for a fresh environment: python -m scripts.init_db"""
import logging

from portrait_studio.core.logging import configure_logging
from portrait_studio.db.init_db import create_tables
from portrait_studio.db.session import SessionLocal
from portrait_studio.services.app_settings.settings_service import AppSettingsService

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    configure_logging()
    create_tables()
    db = SessionLocal()
    try:
        AppSettingsService(db).get_or_create()
    finally:
        db.close()
    logger.info("tables_created")
