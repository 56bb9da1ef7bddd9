from abc import ABC, abstractmethod


class BlobStore(ABC):
    """Byte blobs addressed by hierarchical path (uploads/{user}/..., generations/{user}/...)."""

    @abstractmethod
    def put(self, path: str, content: bytes, content_type: str | None = None) -> str:
        """Save content; returns the path it was stored under."""
        raise NotImplementedError

    @abstractmethod
    def get(self, path: str) -> bytes | None:
        """Blob bytes, or None when nothing is stored at path."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def exists(self, path: str) -> bool:
        raise NotImplementedError


def normalize_path(path: str) -> str:
    """Strip leading slashes and reject traversal segments."""
    clean = path.replace("\\", "/").lstrip("/")
    parts = [p for p in clean.split("/") if p not in ("", ".")]
    if not parts or any(p == ".." for p in parts):
        raise ValueError(f"invalid blob path: {path!r}")
    return "/".join(parts)
