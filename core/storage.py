"""Local-disk file storage for uploaded attachments.

Files are written under a single upload directory with a generated,
collision-free name that keeps the original extension. Deletion is
best-effort: failures are logged and reported as False, never raised,
so record mutations that follow a delete always go ahead.
"""

import logging
import math
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FileTooLargeError(ValueError):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, file_name: str, limit: int):
        self.file_name = file_name
        self.limit = limit
        super().__init__(f"{file_name} exceeds the {readable_file_size(limit)} limit")


@dataclass
class StoredFile:
    """Descriptor of an upload that has been written to storage."""

    file_name: str
    file_path: str
    file_type: str
    file_size: int


def readable_file_size(size: int) -> str:
    """Human-readable size: 0 Byte, 512 Bytes, 1.5 KB, 3 MB."""
    sizes = ["Bytes", "KB", "MB", "GB", "TB"]
    if size <= 0:
        return "0 Byte"
    i = min(int(math.floor(math.log(size, 1024))), len(sizes) - 1)
    value = round(size / (1024 ** i), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {sizes[i]}"


class FileStorage:
    """Owns the upload directory."""

    def __init__(self, root: str | Path, public_prefix: str = "/uploads", max_file_size: int | None = None):
        self.root = Path(root)
        self.public_prefix = public_prefix.rstrip("/")
        self.max_file_size = max_file_size

    def ensure_root(self) -> Path:
        if not self.root.exists():
            logger.info("Creating uploads directory at %s", self.root)
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    async def save(self, upload: UploadFile) -> StoredFile:
        """Stream an upload to disk and describe it."""
        self.ensure_root()
        original = Path(upload.filename or "upload").name
        target = self.root / f"{uuid.uuid4().hex}{Path(original).suffix.lower()}"
        file_type = (
            upload.content_type
            or mimetypes.guess_type(original)[0]
            or "application/octet-stream"
        )

        size = 0
        try:
            with target.open("wb") as fh:
                while chunk := await upload.read(CHUNK_SIZE):
                    size += len(chunk)
                    if self.max_file_size is not None and size > self.max_file_size:
                        raise FileTooLargeError(original, self.max_file_size)
                    fh.write(chunk)
        except Exception:
            self.delete(target)
            raise

        logger.debug("Stored upload %s as %s (%d bytes)", original, target, size)
        return StoredFile(
            file_name=original,
            file_path=str(target),
            file_type=file_type,
            file_size=size,
        )

    def exists(self, file_path: str | Path) -> bool:
        return Path(file_path).is_file()

    def delete(self, file_path: str | Path) -> bool:
        """Remove a file if present. Never raises."""
        path = Path(file_path)
        try:
            if path.exists():
                path.unlink()
                return True
            return False
        except OSError as exc:
            logger.warning("Error deleting file at %s: %s", path, exc)
            return False

    def public_url(self, file_path: str | Path) -> str:
        return f"{self.public_prefix}/{Path(file_path).name}"
