from typing import Optional

from pydantic import BaseModel

from app.core.enum import ContentStatus, FileType, values
from app.db.models.database import Books
from app.schemas.admin.book import BookAdminOut
from app.services.admin.catalog import CatalogService


class BookService(CatalogService):
    model = Books
    resource = "Book"
    out_schema = BookAdminOut
    statuses = tuple(values(ContentStatus))
    search_columns = ("title", "author", "description")
    filter_columns = ("category", "level", "is_published")
    sort_columns = ("created_at", "updated_at", "title", "price", "author")
    uploads = {
        "pdf": (FileType.BOOK_PDF, "pdf_path"),
        "cover": (FileType.BOOK_COVER, "cover_image_path"),
    }

    def before_create(self, obj: Books, schema: BaseModel) -> None:
        # visibility follows the status unless the request sets it
        if "is_published" not in schema.model_fields_set:
            obj.is_published = obj.status == ContentStatus.PUBLISHED.value

    async def apply_status(
        self, obj: Books, status: str, is_published: Optional[bool] = None, **extra
    ) -> None:
        obj.status = status
        obj.is_published = (
            is_published if is_published is not None else status == ContentStatus.PUBLISHED.value
        )

    async def soft_delete(self, obj: Books) -> None:
        obj.status = ContentStatus.ARCHIVED.value
        obj.is_published = False
