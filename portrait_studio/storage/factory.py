from portrait_studio.core.config import settings
from portrait_studio.storage.base import BlobStore
from portrait_studio.storage.local import LocalBlobStore

_blob_store: BlobStore | None = None


def get_blob_store() -> BlobStore:
    """Process-wide Blob Store for settings.storage_backend."""
    global _blob_store
    if _blob_store is None:
        if settings.storage_backend == "s3":
            from portrait_studio.storage.s3 import S3BlobStore, s3_client

            _blob_store = S3BlobStore(s3_client(settings), settings.s3_bucket)
        else:
            _blob_store = LocalBlobStore(settings.storage_base_path)
    return _blob_store
