from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status

from app.core.deps import get_current_user
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.schemas.admin.book import BookCreate, BookStatusUpdate, BookUpdate
from app.services.admin.book import BookService

router = APIRouter(prefix="/admin/books", tags=["ADMIN BOOKS"], dependencies=guard("admin"))


@router.get("")
async def get_books(
    book_service: BookService = Depends(BookService),
    search: Optional[str] = Query(None, description="Title, author or description"),
    status_: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    is_published: Optional[bool] = Query(None),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    return ok(
        await book_service.get_list_async(
            page,
            size,
            search,
            status_,
            {"category": category, "level": level, "is_published": is_published},
            sort_by,
            order,
        )
    )


@router.get("/{book_id}")
async def get_book(book_id: int, book_service: BookService = Depends(BookService)):
    return ok(await book_service.get_by_id_async(book_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(
    schema: BookCreate = Body(...),
    admin: User = Depends(get_current_user),
    book_service: BookService = Depends(BookService),
):
    return ok(await book_service.create_async(schema, admin), "Book created")


@router.put("/{book_id}")
async def update_book(
    book_id: int,
    schema: BookUpdate = Body(...),
    book_service: BookService = Depends(BookService),
):
    return ok(await book_service.update_async(book_id, schema), "Book updated")


@router.put("/{book_id}/status")
async def update_book_status(
    book_id: int,
    schema: BookStatusUpdate = Body(...),
    book_service: BookService = Depends(BookService),
):
    return ok(
        await book_service.update_status_async(
            book_id, schema.status, is_published=schema.is_published
        )
    )


@router.put("/{book_id}/pdf")
async def upload_book_pdf(
    book_id: int,
    file: UploadFile = File(...),
    book_service: BookService = Depends(BookService),
):
    return ok(await book_service.upload_file_async(book_id, "pdf", file), "PDF uploaded")


@router.put("/{book_id}/cover")
async def upload_book_cover(
    book_id: int,
    file: UploadFile = File(...),
    book_service: BookService = Depends(BookService),
):
    return ok(await book_service.upload_file_async(book_id, "cover", file), "Cover uploaded")


@router.delete("/{book_id}")
async def delete_book(book_id: int, book_service: BookService = Depends(BookService)):
    return ok(await book_service.delete_async(book_id), "Book archived")
