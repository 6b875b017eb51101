from fastapi import APIRouter, Body, Depends, Request, Response, status

from app.core.deps import get_current_user
from app.core.policy import guard
from app.core.rate_limit import limiter
from app.core.settings import settings
from app.db.models.database import User
from app.libs.formats.envelope import ok
from app.schemas.auth.user import (
    ForgotPassword,
    LoginUser,
    LogoutIn,
    RefreshTokenIn,
    RegisterUser,
    ResendVerification,
    ResetPassword,
    VerifyEmail,
)
from app.services.shares.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"], dependencies=guard("auth"))


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    schema: RegisterUser = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    data = await auth_service.register_async(schema)
    return ok(data, "Registration successful, check your email to verify the account")


@router.post("/login", status_code=status.HTTP_200_OK)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    res: Response,
    schema: LoginUser = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    return ok(await auth_service.login_async(schema, res), "Login successful")


@router.post("/refresh-token", status_code=status.HTTP_200_OK)
async def refresh_token(
    res: Response,
    schema: RefreshTokenIn = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    return ok(await auth_service.refresh_token_async(schema.refresh_token, res))


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(
    res: Response,
    schema: LogoutIn = Body(default_factory=LogoutIn),
    auth_service: AuthService = Depends(AuthService),
):
    await auth_service.logout_async(schema, res)
    return ok(message="Logged out")


@router.post("/forgot-password", status_code=status.HTTP_200_OK)
@limiter.limit(settings.FORGOT_PASSWORD_RATE_LIMIT)
async def forgot_password(
    request: Request,
    schema: ForgotPassword = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    await auth_service.forgot_password_async(schema)
    return ok(message="If that email is registered, a reset link has been sent")


@router.post("/reset-password", status_code=status.HTTP_200_OK)
async def reset_password(
    schema: ResetPassword = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    await auth_service.reset_password_async(schema)
    return ok(message="Password updated, please log in again")


@router.post("/verify-email", status_code=status.HTTP_200_OK)
async def verify_email(
    schema: VerifyEmail = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    return ok(await auth_service.verify_email_async(schema), "Email verified")


@router.post("/resend-verification", status_code=status.HTTP_200_OK)
async def resend_verification(
    schema: ResendVerification = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    await auth_service.resend_verification_async(schema)
    return ok(message="If the account still needs verification, a new link has been sent")


@router.get("/me", dependencies=guard("auth.session"))
async def me(
    user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(AuthService),
):
    return ok(await auth_service.me_async(user))
