"""
Wanderlust: Listing Image Storage
=================================

What:  Validates uploaded listing images and stores them on local disk.
How:   Extension check, size check, MIME sniffing with libmagic, then an
       async write to a date-organized directory under a UUID filename.
Who:   ListingService, when a listing is created or its image replaced.

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-5678.jpg
                └── e5f6g7h8-9012.webp

Stored files are served back under `/uploads/<relative path>`.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from wanderlust.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}


@dataclass(frozen=True)
class StoredImage:
    """Where an upload landed: public URL plus path relative to the storage root."""

    url: str
    filename: str


class FileService:
    """
    Upload validation and storage lifecycle.

    Validation order (cheapest first):
        1. Extension
        2. Size (empty files and files over `max_file_size` are rejected)
        3. MIME type from the file's magic bytes
    """

    def __init__(self, storage_root: str, max_file_size: int = 10 * 1024 * 1024):
        self.storage_root = Path(storage_root).resolve()
        self.max_file_size = max_file_size
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """Return the normalized extension, or raise ValidationError."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, actual_size: int) -> None:
        if actual_size == 0:
            raise ValidationError(message="Uploaded image is empty.", field="image")

        if actual_size > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, content: bytes) -> str:
        """
        Detect the real content type from the file header.

        Raises:
            ValidationError: the bytes are not a supported image.
            FileStorageError: libmagic itself failed.
        """
        try:
            mime_type = magic.from_buffer(content, mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", e)
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            ) from e

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a valid image (PNG, JPEG or WebP)."
                ),
                field="image",
                context={"detected_mime": mime_type},
            )
        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> StoredImage:
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from e

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return StoredImage(url=f"{UPLOAD_URL_PREFIX}/{relative_path}", filename=relative_path)

    def resolve(self, filename: str) -> Optional[Path]:
        """Absolute path for a stored filename, or None if it escapes the root."""
        path = (self.storage_root / filename).resolve()
        if self.storage_root not in path.parents:
            return None
        return path

    async def cleanup(self, filename: Optional[str]) -> None:
        """
        Remove a stored image. Best-effort: a missing file is ignored and an
        OS error is logged, never raised.
        """
        if not filename:
            return
        path = self.resolve(filename)
        if path is None:
            logger.warning("Refusing to clean up path outside storage root: %s", filename)
            return
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", filename)
            else:
                logger.debug("Cleanup: file already gone: %s", filename)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", filename, e)

    async def validate_and_store(self, filename: str, content: bytes) -> StoredImage:
        ext = self.validate_extension(filename)
        self.validate_size(len(content))
        self.validate_mime_type(content)
        return await self.store_file(content, ext)
