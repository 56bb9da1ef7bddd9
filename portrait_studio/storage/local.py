import os

from portrait_studio.storage.base import BlobStore, normalize_path


class LocalBlobStore(BlobStore):
    def __init__(self, base_path: str):
        self.base_path = base_path
        os.makedirs(self.base_path, exist_ok=True)

    def _full_path(self, path: str) -> str:
        return os.path.join(self.base_path, *normalize_path(path).split("/"))

    def put(self, path: str, content: bytes, content_type: str | None = None) -> str:
        full = self._full_path(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as f:
            f.write(content)
        return normalize_path(path)

    def get(self, path: str) -> bytes | None:
        full = self._full_path(path)
        if not os.path.isfile(full):
            return None
        with open(full, "rb") as f:
            return f.read()

    def delete(self, path: str) -> None:
        full = self._full_path(path)
        if os.path.isfile(full):
            os.remove(full)

    def exists(self, path: str) -> bool:
        return os.path.isfile(self._full_path(path))
