from fastapi import APIRouter, Depends

from app.core.deps import get_current_user
from app.core.policy import guard
from app.db.models.database import User
from app.services.shares.secure_content import SecureContentService

router = APIRouter(prefix="/secure-pdf", tags=["Secure PDF"])


@router.get("/pdf/{book_id}", dependencies=guard("secure_pdf.pdf"))
async def get_secure_pdf(
    book_id: int,
    user: User = Depends(get_current_user),
    service: SecureContentService = Depends(SecureContentService),
):
    return await service.get_secure_pdf_async(book_id, user)


@router.get("/cover/{book_id}", dependencies=guard("secure_pdf.cover"))
async def get_cover_image(
    book_id: int,
    service: SecureContentService = Depends(SecureContentService),
):
    return await service.get_cover_image_async(book_id)
