"""
RecipeShare Backend — Recipe Image Storage
============================================

What:  Validates, stores, resolves and deletes uploaded recipe images.
How:   Extension and size checks, then an async write into a date-organized
       directory under STORAGE_ROOT with a UUID filename.
Who:   Called by RecipeService on create/update/delete and by routes/files.py.

Directory Structure:
    uploads/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-5678.jpg
                └── e5f6g7h8-9012.webp

No user input reaches the stored filename; the original name only
contributes its extension.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from recipeshare.config import settings
from recipeshare.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


class FileService:
    """
    Manages the lifecycle of uploaded recipe images.

    Lifecycle of an uploaded file:
        1. Route reads the multipart upload → RecipeService → store_image()
        2. Extension check, size check (Content-Length and actual bytes)
        3. File is written to YYYY/MM/DD/<uuid><ext>
        4. Relative path is returned and saved on the recipe row
        5. Replaced or deleted recipes → delete_image() removes the old file
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                         If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
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

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the declared Content-Length first, then the bytes actually received.

        Raises:
            ValidationError with human-readable size limit message
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"Image size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"Image size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

        if actual_size == 0:
            raise ValidationError(message="Uploaded image is empty.", field="image")

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new YYYY/MM/DD/<uuid><ext> file."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"
        relative_path = f"{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path
        return absolute_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write validated file content to disk.

        Returns: Relative path from storage root.
        Raises:  FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
            return relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def store_image(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full validate-then-store pipeline for a recipe image.

        Returns: Relative path to save on the recipe row.
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        return await self.store_file(content, ext)

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored relative path to an absolute file inside the storage root.

        Raises:
            ValidationError: the path escapes the storage root (../ traversal)
            NotFoundError: no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    async def delete_image(self, relative_path: Optional[str]) -> None:
        """
        Remove a stored image. Best effort: a missing file or an OS error is
        logged and ignored, since the recipe change has already succeeded.
        """
        if not relative_path:
            return
        try:
            path = (self.storage_root / relative_path).resolve()
            if not path.is_relative_to(self.storage_root):
                logger.warning("Refusing to delete path outside storage root: %s", relative_path)
                return
            if path.exists():
                os.remove(path)
                logger.info("Deleted image: %s", relative_path)
            else:
                logger.debug("Delete: image already gone: %s", relative_path)
        except OSError as e:
            logger.warning("Failed to delete image %s: %s", relative_path, str(e))


def media_type_for(path: Path) -> str:
    return MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream")


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
