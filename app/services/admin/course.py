from app.core.enum import ContentStatus, FileType, values
from app.db.models.database import Courses
from app.schemas.admin.course import CourseOut
from app.services.admin.catalog import CatalogService


class CourseService(CatalogService):
    model = Courses
    resource = "Course"
    out_schema = CourseOut
    statuses = tuple(values(ContentStatus))
    search_columns = ("title", "description", "instructor")
    filter_columns = ("category", "level")
    uploads = {"thumbnail": (FileType.COURSE_THUMBNAIL, "thumbnail_path")}

    async def soft_delete(self, obj: Courses) -> None:
        # enrollments keep pointing at it
        obj.status = ContentStatus.ARCHIVED.value
