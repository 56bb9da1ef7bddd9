import mimetypes

from fastapi import APIRouter, Depends, Response

from portrait_studio.api.deps import get_storage
from portrait_studio.core.errors import ResourceNotFound, StoreUnavailable
from portrait_studio.storage.base import BlobStore


router = APIRouter(prefix="/api", tags=["images"])


@router.get("/image/{path:path}")
def serve_image(path: str, blob_store: BlobStore = Depends(get_storage)) -> Response:
    try:
        content = blob_store.get(path)
    except ValueError:
        content = None
    except OSError as e:
        raise StoreUnavailable("Blob Store unavailable") from e
    if content is None:
        raise ResourceNotFound("Not found")
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
