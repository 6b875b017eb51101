# app/services/shares/content_store.py
import os
import uuid
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile
from loguru import logger

from app.core.enum import FileType
from app.core.exceptions import UpstreamException, ValidationException
from app.core.settings import settings

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

ALLOWED_EXTENSIONS: dict[FileType, set[str]] = {
    FileType.BOOK_PDF: {".pdf"},
    FileType.BOOK_COVER: IMAGE_EXTENSIONS,
    FileType.COURSE_THUMBNAIL: IMAGE_EXTENSIONS,
    FileType.LIVE_CLASS_THUMBNAIL: IMAGE_EXTENSIONS,
    FileType.AVATAR: IMAGE_EXTENSIONS,
}

MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
}

_READ_CHUNK = 1024 * 1024


def is_safe_path(base_path: str | Path, target_path: str | Path) -> bool:
    """True when target_path resolves inside base_path (path traversal guard)."""
    try:
        base = Path(base_path).resolve()
        target = Path(target_path).resolve()
        return base in target.parents or base == target
    except (OSError, RuntimeError):
        return False


def media_type_for(path: str | Path) -> str:
    return MEDIA_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


class ContentStore:
    """Local file store for protected PDFs and public images.

    Entities keep paths relative to ``root`` (``books/pdfs/<hex>.pdf``);
    nothing outside ``root`` can ever be resolved.
    """

    def __init__(self, root: str | Path | None = None, max_upload_size: int | None = None):
        self.root = Path(root or settings.CONTENT_ROOT)
        self.max_upload_size = max_upload_size or settings.MAX_UPLOAD_SIZE

    # ==========================================================================
    # 📤 Upload
    # ==========================================================================
    async def save_upload_async(self, upload: UploadFile, file_type: FileType) -> str:
        ext = Path(upload.filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS[file_type]:
            allowed = ", ".join(sorted(ALLOWED_EXTENSIONS[file_type]))
            raise ValidationException(f"Unsupported file type '{ext or '?'}', expected {allowed}")

        relative = f"{file_type.value}/{uuid.uuid4().hex}{ext}"
        target = self.root / relative
        written = 0
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as out_file:
                first = True
                while chunk := await upload.read(_READ_CHUNK):
                    if first and ext == ".pdf" and not chunk.startswith(b"%PDF"):
                        raise ValidationException("File is not a valid PDF document")
                    first = False
                    written += len(chunk)
                    if written > self.max_upload_size:
                        raise ValidationException(
                            f"File exceeds the {self.max_upload_size // (1024 * 1024)}MB limit"
                        )
                    await out_file.write(chunk)
        except ValidationException:
            await self._discard(target)
            raise
        except OSError as e:
            await self._discard(target)
            logger.exception(f"💥 Content store write failed for {relative}: {e}")
            raise UpstreamException("Content store unavailable")

        if written == 0:
            await self._discard(target)
            raise ValidationException("Uploaded file is empty")

        logger.info(f"📁 Stored {relative} ({written} bytes)")
        return relative

    async def _discard(self, target: Path) -> None:
        if await aiofiles.os.path.exists(target):
            await aiofiles.os.remove(target)

    async def delete_async(self, relative: Optional[str]) -> None:
        path = self.resolve(relative)
        if path is None:
            return
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            # the entity no longer points at it; an orphan file is harmless
            logger.warning(f"⚠️ Could not remove {relative}: {e}")

    # ==========================================================================
    # 📥 Read
    # ==========================================================================
    def resolve(self, relative: Optional[str]) -> Optional[Path]:
        """Absolute path of an existing file inside the root, else None."""
        if not relative:
            return None
        candidate = self.root / relative
        if not is_safe_path(self.root, candidate):
            logger.warning(f"🚫 Path outside content root rejected: {relative}")
            return None
        if not os.path.isfile(candidate):
            return None
        return candidate.resolve()

    async def stream(self, path: Path, chunk_size: int | None = None) -> AsyncIterator[bytes]:
        size = chunk_size or settings.STREAM_CHUNK_SIZE
        async with aiofiles.open(path, "rb") as f:
            while chunk := await f.read(size):
                yield chunk


def get_content_store() -> ContentStore:
    return ContentStore()
