"""Upload storage abstraction with a local-disk implementation."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional
from uuid import uuid4

from fastapi import UploadFile

from pinboard.errors import FileTooLarge, UnsupportedFileType
from pinboard.settings import Settings

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads/"
_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


@dataclass
class StoredUpload:
    """Result of persisting one uploaded file."""

    filename: str
    path: Path
    size: int
    content_type: str


class UploadStorageProvider(ABC):
    """Where uploaded image bytes live."""

    @abstractmethod
    async def save(self, upload: UploadFile) -> StoredUpload:
        """Validate and persist one uploaded file under a fresh unique name."""

    @abstractmethod
    def remove(self, filename: str) -> bool:
        """Delete a stored file. Returns False when it was already gone."""

    def public_url(self, base_url: str, filename: str) -> str:
        return f"{base_url.rstrip('/')}{UPLOADS_URL_PREFIX}{filename}"


class LocalDiskStorageProvider(UploadStorageProvider):
    """Store uploads as files in a single server-controlled directory."""

    def __init__(self, root: Path, *, max_bytes: int, chunk_size: int = 64 * 1024):
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.chunk_size = chunk_size

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    @staticmethod
    def generate_filename(original_name: Optional[str]) -> str:
        """UUID-based name keeping a short alphanumeric extension from the client name."""
        suffix = PurePosixPath((original_name or "").replace("\\", "/")).suffix
        if not _SAFE_EXTENSION.match(suffix):
            suffix = ""
        return f"{uuid4()}{suffix.lower()}"

    def path_for(self, filename: str) -> Path:
        return self.root / filename

    async def save(self, upload: UploadFile) -> StoredUpload:
        """Stream an upload to disk.

        Raises:
            UnsupportedFileType: Declared content type is not image/*; nothing is written
            FileTooLarge: More than ``max_bytes`` were received; the partial file is removed
        """
        content_type = (upload.content_type or "").strip().lower()
        if not content_type.startswith("image/"):
            logger.info("Rejected upload %r with content type %r", upload.filename, content_type)
            raise UnsupportedFileType()

        self.ensure_root()
        filename = self.generate_filename(upload.filename)
        path = self.path_for(filename)

        size = 0
        too_large = False
        try:
            with path.open("wb") as handle:
                while True:
                    chunk = await upload.read(self.chunk_size)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        too_large = True
                        break
                    handle.write(chunk)
        except Exception:
            path.unlink(missing_ok=True)
            raise

        if too_large:
            path.unlink(missing_ok=True)
            logger.info("Rejected upload %r above %s bytes", upload.filename, self.max_bytes)
            raise FileTooLarge(
                f"File exceeds the upload limit ({self.max_bytes // (1024 * 1024)} MB)"
            )

        return StoredUpload(filename=filename, path=path, size=size, content_type=content_type)

    def remove(self, filename: str) -> bool:
        path = self.path_for(filename)
        if path.resolve().parent != self.root.resolve():
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True


def create_storage_provider(app_settings: Settings) -> UploadStorageProvider:
    """Build the upload storage configured for this process."""
    return LocalDiskStorageProvider(
        app_settings.uploads_path,
        max_bytes=app_settings.max_upload_bytes,
        chunk_size=app_settings.upload_chunk_bytes,
    )
