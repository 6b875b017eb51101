# app/services/shares/secure_content.py
"""Protected book delivery.

Visibility is checked again on every request with a short-lived session
that is closed before the first byte is streamed, so a slow reader never
pins a pooled connection.
"""
from pathlib import Path
from typing import AsyncIterator

from fastapi import Depends
from fastapi.responses import FileResponse, StreamingResponse
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import NotFoundException
from app.core.settings import settings
from app.db.models.database import Books, User
from app.db.session import get_session_factory
from app.libs.formats.text import safe_filename
from app.services.shares.content_store import ContentStore, get_content_store, media_type_for
from app.services.user.catalog import book_is_visible

PDF_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; sandbox",
    "Referrer-Policy": "no-referrer",
}

COVER_CACHE_CONTROL = "public, max-age=3600"

DEFAULT_PLACEHOLDER = Path(__file__).resolve().parent.parent.parent / "static" / "placeholder.svg"


class SecureContentService:
    def __init__(
        self,
        factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
        store: ContentStore = Depends(get_content_store),
    ):
        self.factory = factory
        self.store = store

    async def _load_visible_book(self, book_id: int) -> tuple[str, str | None, str | None]:
        async with self.factory() as db:
            book = await db.scalar(select(Books).where(Books.id == book_id, book_is_visible()))
            if not book:
                raise NotFoundException("Book", book_id)
            return book.title, book.pdf_path, book.cover_image_path

    async def _guarded(self, path: Path, book_id: int, user: User) -> AsyncIterator[bytes]:
        sent = 0
        try:
            async for chunk in self.store.stream(path):
                sent += len(chunk)
                yield chunk
        except OSError as e:
            logger.error(f"💥 Streaming book #{book_id} to {user.email} failed after {sent} bytes: {e}")
            raise
        logger.info(f"📖 Book #{book_id} streamed to {user.email} ({sent} bytes)")

    async def get_secure_pdf_async(self, book_id: int, user: User) -> StreamingResponse:
        title, pdf_path, _ = await self._load_visible_book(book_id)

        path = self.store.resolve(pdf_path)
        if path is None:
            logger.warning(f"⚠️ PDF of book #{book_id} missing in content store ({pdf_path})")
            raise NotFoundException("Book content", book_id)

        headers = {
            **PDF_HEADERS,
            "Content-Disposition": f'inline; filename="{safe_filename(title, "pdf")}"',
            "Content-Length": str(path.stat().st_size),
        }
        return StreamingResponse(
            self._guarded(path, book_id, user),
            media_type="application/pdf",
            headers=headers,
        )

    async def get_cover_image_async(self, book_id: int) -> FileResponse:
        _, _, cover_path = await self._load_visible_book(book_id)

        path = self.store.resolve(cover_path)
        if path is None:
            path = Path(settings.PLACEHOLDER_COVER_PATH or DEFAULT_PLACEHOLDER)
            if not path.is_file():
                raise NotFoundException("Cover image", book_id)

        return FileResponse(
            path,
            media_type=media_type_for(path),
            headers={
                "Cache-Control": COVER_CACHE_CONTROL,
                "X-Content-Type-Options": "nosniff",
            },
        )
