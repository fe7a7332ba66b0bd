"""Upload storage abstractions."""

from .providers import (
    UploadStorageProvider,
    LocalDiskStorageProvider,
    StoredUpload,
    UPLOADS_URL_PREFIX,
    create_storage_provider,
)

__all__ = [
    "UploadStorageProvider",
    "LocalDiskStorageProvider",
    "StoredUpload",
    "UPLOADS_URL_PREFIX",
    "create_storage_provider",
]
