from abc import ABC, abstractmethod
from typing import Any, Optional

from fastapi import Depends, HTTPException, UploadFile
from loguru import logger
from pydantic import BaseModel
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import FileType
from app.core.exceptions import NotFoundException, ValidationException
from app.db.models.database import User
from app.db.session import get_session
from app.libs.formats.envelope import paginate
from app.services.shares.content_store import ContentStore, get_content_store


class CatalogService(ABC):
    """Admin CRUD shared by courses, books and live classes.

    Subclasses declare the model, the legal status set and which columns
    can be searched, filtered and sorted; hooks cover entity specific rules.
    """

    model: Any = None
    resource: str = "Resource"
    out_schema: type[BaseModel]
    statuses: tuple[str, ...] = ()
    search_columns: tuple[str, ...] = ("title",)
    filter_columns: tuple[str, ...] = ("category", "level")
    sort_columns: tuple[str, ...] = ("created_at", "updated_at", "title", "price")
    uploads: dict[str, tuple[FileType, str]] = {}

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        store: ContentStore = Depends(get_content_store),
    ):
        self.db = db
        self.store = store

    def serialize(self, obj) -> dict[str, Any]:
        return self.out_schema.model_validate(obj).model_dump(mode="json")

    async def get_or_404(self, entity_id: int):
        obj = await self.db.get(self.model, entity_id)
        if not obj:
            raise NotFoundException(self.resource, entity_id)
        return obj

    def validate_status(self, status: str) -> str:
        if status not in self.statuses:
            raise ValidationException(
                f"Invalid status '{status}'. Allowed: {', '.join(self.statuses)}",
                errors={"status": list(self.statuses)},
            )
        return status

    # ==========================================================================
    # 📋 List / detail
    # ==========================================================================
    async def get_list_async(
        self,
        page: int = 1,
        size: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        filters: Optional[dict[str, Any]] = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ):
        stmt = select(self.model)

        # 1️⃣ filters
        if status:
            stmt = stmt.where(self.model.status == status)
        for name, value in (filters or {}).items():
            if value is not None and name in self.filter_columns:
                stmt = stmt.where(getattr(self.model, name) == value)
        if search:
            keyword = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(*(func.lower(getattr(self.model, c)).like(keyword) for c in self.search_columns))
            )

        # 2️⃣ total
        total_items = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        # 3️⃣ sort + page
        sort_column = getattr(self.model, sort_by if sort_by in self.sort_columns else "created_at")
        sort_expr = sort_column.asc() if order.lower() == "asc" else sort_column.desc()
        stmt = stmt.order_by(sort_expr, self.model.id.desc()).offset((page - 1) * size).limit(size)

        items = (await self.db.scalars(stmt)).all()
        return paginate([self.serialize(i) for i in items], total_items, page, size)

    async def get_by_id_async(self, entity_id: int):
        return self.serialize(await self.get_or_404(entity_id))

    # ==========================================================================
    # ✏️ Create / update / delete
    # ==========================================================================
    def before_create(self, obj, schema: BaseModel) -> None:
        pass

    def before_update(self, obj, changes: dict[str, Any]) -> None:
        pass

    async def create_async(self, schema: BaseModel, admin: User):
        try:
            data = schema.model_dump(mode="python")
            if "status" in data:
                data["status"] = self.validate_status(getattr(data["status"], "value", data["status"]))
            obj = self.model(**data, created_by=admin.id)
            self.before_create(obj, schema)
            self.db.add(obj)
            await self.db.commit()
            await self.db.refresh(obj)
            logger.info(f"🆕 {self.resource} #{obj.id} created by {admin.email}")
            return self.serialize(obj)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def update_async(self, entity_id: int, schema: BaseModel):
        try:
            obj = await self.get_or_404(entity_id)
            # omitted fields stay as they are
            changes = schema.model_dump(exclude_unset=True)
            for field, value in changes.items():
                if value is None and not self.model.__table__.c[field].nullable:
                    raise ValidationException(f"'{field}' cannot be null")
                setattr(obj, field, value)
            self.before_update(obj, changes)
            await self.db.commit()
            await self.db.refresh(obj)
            return self.serialize(obj)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def apply_status(self, obj, status: str, **extra) -> None:
        obj.status = status

    async def update_status_async(self, entity_id: int, status: str, **extra):
        try:
            obj = await self.get_or_404(entity_id)
            new_status = self.validate_status(status)
            old_status = obj.status
            await self.apply_status(obj, new_status, **extra)
            await self.db.commit()
            await self.db.refresh(obj)
            logger.info(f"🔄 {self.resource} #{obj.id}: {old_status} -> {obj.status}")
            return self.serialize(obj)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    @abstractmethod
    async def soft_delete(self, obj) -> None:
        """Retire the entity instead of removing the row."""

    async def delete_async(self, entity_id: int):
        try:
            obj = await self.get_or_404(entity_id)
            await self.soft_delete(obj)
            await self.db.commit()
            await self.db.refresh(obj)
            logger.info(f"🗑️ {self.resource} #{obj.id} -> {obj.status}")
            return self.serialize(obj)
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    # ==========================================================================
    # 📤 Uploads
    # ==========================================================================
    async def upload_file_async(self, entity_id: int, kind: str, upload: UploadFile):
        file_type, attr = self.uploads[kind]
        obj = await self.get_or_404(entity_id)
        relative = await self.store.save_upload_async(upload, file_type)
        previous = getattr(obj, attr)
        try:
            setattr(obj, attr, relative)
            await self.db.commit()
            await self.db.refresh(obj)
        except Exception:
            await self.db.rollback()
            await self.store.delete_async(relative)
            raise
        if previous and previous != relative:
            await self.store.delete_async(previous)
        return self.serialize(obj)
