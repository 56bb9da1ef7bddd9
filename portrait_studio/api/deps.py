"""Shared FastAPI dependencies: configuration snapshot, Blob Store, Gemini client, uploads."""
from dataclasses import dataclass

from fastapi import Depends, UploadFile
from sqlalchemy.orm import Session

from portrait_studio.core.config import settings
from portrait_studio.core.errors import InvalidRequest
from portrait_studio.db.session import get_db
from portrait_studio.services.app_settings.settings_service import AppSettingsService, RuntimeConfig
from portrait_studio.services.generations.service import upload_extension
from portrait_studio.services.image_generation import ImageGenerationProvider, create_image_client
from portrait_studio.services.telegram.client import TelegramClient
from portrait_studio.storage.base import BlobStore
from portrait_studio.storage.factory import get_blob_store


def get_runtime_config(db: Session = Depends(get_db)) -> RuntimeConfig:
    return AppSettingsService(db).snapshot(settings)


def get_storage() -> BlobStore:
    return get_blob_store()


def get_image_provider() -> ImageGenerationProvider:
    return create_image_client(settings)


def get_alerts() -> TelegramClient:
    return TelegramClient()


@dataclass(frozen=True)
class ImageUpload:
    content: bytes
    extension: str
    mime_type: str


def read_image_upload(image: UploadFile | None) -> ImageUpload:
    if image is None:
        raise InvalidRequest("No image uploaded")
    content = image.file.read()
    if not content:
        raise InvalidRequest("No image uploaded")
    if len(content) > settings.max_file_size_mb * 1024 * 1024:
        raise InvalidRequest(f"Image is larger than {settings.max_file_size_mb} MB")
    extension = upload_extension(image.filename, settings.allowed_extensions_set)
    return ImageUpload(content=content, extension=extension, mime_type=image.content_type or "image/jpeg")
