from fastapi import APIRouter

from app.api.v1 import auth
from app.api.v1.admin import analytics, books, courses, enrollments, live_classes
from app.api.v1.admin import user as admin_user
from app.api.v1.shares import notification, profile, secure_pdf
from app.api.v1.user import student

api_router = APIRouter()

for module in (
    auth,
    admin_user,
    courses,
    books,
    live_classes,
    enrollments,
    analytics,
    student,
    profile,
    notification,
    secure_pdf,
):
    api_router.include_router(module.router)
