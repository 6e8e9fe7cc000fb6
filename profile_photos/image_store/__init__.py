import os
import threading

from .cloudinary_store import CloudinaryImageStore, CloudinaryStoreError
from .filesystem_store import FileSystemImageStore
from .image_store import (
    DeletionResult,
    ImageStore,
    ImageStoreError,
    Transformation,
    UploadResult,
)

_image_store: ImageStore | None = None
_image_store_lock = threading.Lock()


def create_image_store() -> ImageStore:
    """
    Factory for the image store based on IMAGE_STORE_BACKEND env var.
    Defaults to CloudinaryImageStore.

    Supported values (case-insensitive):
      - 'cloudinary'
      - 'filesystem'
    """
    backend = os.getenv("IMAGE_STORE_BACKEND", "cloudinary").lower()
    if backend == "filesystem":
        return FileSystemImageStore()
    if backend in ("cloudinary", ""):  # default
        return CloudinaryImageStore()
    error_message = f"Unknown image store backend: {backend}"
    raise ValueError(error_message)


def get_image_store() -> ImageStore:
    """
    Process-wide image store, built from the environment on first use and
    shared by every request afterwards.
    """
    global _image_store  # noqa: PLW0603
    if _image_store is None:
        with _image_store_lock:
            if _image_store is None:
                _image_store = create_image_store()
    return _image_store


def reset_image_store() -> None:
    """Drop the shared image store so the next call rebuilds it."""
    global _image_store  # noqa: PLW0603
    with _image_store_lock:
        _image_store = None


__all__ = [
    "CloudinaryImageStore",
    "CloudinaryStoreError",
    "DeletionResult",
    "FileSystemImageStore",
    "ImageStore",
    "ImageStoreError",
    "Transformation",
    "UploadResult",
    "create_image_store",
    "get_image_store",
    "reset_image_store",
]
