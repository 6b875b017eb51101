from fastapi import APIRouter, Body, Depends, File, Response, UploadFile

from app.core.deps import get_current_user
from app.core.policy import guard
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.schemas.user.profile import ChangePassword, DeleteAccount, ProfileUpdate, SettingsUpdate
from app.services.shares.auth import ACCESS_COOKIE
from app.services.user.profile import ProfileService

router = APIRouter(prefix="/profile", tags=["Profile"], dependencies=guard("profile"))


@router.get("")
async def get_profile(
    user: User = Depends(get_current_user),
    profile_service: ProfileService = Depends(ProfileService),
):
    return ok(await profile_service.get_profile_async(user))


@router.put("")
async def update_profile(
    schema: ProfileUpdate = Body(...),
    user: User = Depends(get_current_user),
    profile_service: ProfileService = Depends(ProfileService),
):
    return ok(await profile_service.update_profile_async(user, schema), "Profile updated")


@router.put("/password")
async def change_password(
    res: Response,
    schema: ChangePassword = Body(...),
    user: User = Depends(get_current_user),
    profile_service: ProfileService = Depends(ProfileService),
):
    await profile_service.change_password_async(user, schema)
    res.delete_cookie(ACCESS_COOKIE, path="/")
    return ok(message="Password changed, please log in again")


@router.put("/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    profile_service: ProfileService = Depends(ProfileService),
):
    return ok(await profile_service.upload_avatar_async(user, file), "Avatar updated")


@router.get("/settings")
async def get_settings(
    user: User = Depends(get_current_user),
    profile_service: ProfileService = Depends(ProfileService),
):
    return ok(await profile_service.get_settings_async(user))


@router.put("/settings")
async def update_settings(
    schema: SettingsUpdate = Body(...),
    user: User = Depends(get_current_user),
    profile_service: ProfileService = Depends(ProfileService),
):
    return ok(await profile_service.update_settings_async(user, schema), "Settings saved")


@router.delete("")
async def delete_account(
    res: Response,
    schema: DeleteAccount = Body(...),
    user: User = Depends(get_current_user),
    profile_service: ProfileService = Depends(ProfileService),
):
    await profile_service.delete_account_async(user, schema)
    res.delete_cookie(ACCESS_COOKIE, path="/")
    return ok(message="Account deleted")
