from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import Depends, HTTPException, Response
from loguru import logger
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import RefreshRevokeReason, TokenPurpose, UserRole, UserStatus
from app.core.exceptions import (
    DuplicateIdentityException,
    ForbiddenException,
    InvalidCredentialsException,
    InvalidTokenException,
    ValidationException,
)
from app.core.security import SecurityService
from app.core.settings import settings
from app.db.models.database import OneTimeTokens, RefreshTokens, User
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now
from app.schemas.auth.user import (
    ForgotPassword,
    LoginUser,
    LogoutIn,
    RegisterUser,
    ResendVerification,
    ResetPassword,
    UserOut,
    VerifyEmail,
)
from app.services.shares.mailer import MailerService

ACCESS_COOKIE = "access_token"


def get_mailer_service() -> MailerService:
    return MailerService()


class AuthService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
        mail_service: MailerService = Depends(get_mailer_service),
    ):
        self.db = db
        self.security = security
        self.mail_service = mail_service

    # ==============================
    # 🔧 HELPERS
    # ==============================

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    async def _get_user_by_email(self, email: str) -> User | None:
        return await self.db.scalar(
            select(User).where(User.email == self._normalize_email(email))
        )

    def _set_access_cookie(self, res: Response, token: str) -> None:
        res.set_cookie(
            key=ACCESS_COOKIE,
            value=token,
            httponly=True,
            secure=settings.ENVIRONMENT == "production",
            samesite="lax",
            max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            path="/",
        )

    async def _issue_session(self, user: User, res: Response) -> dict[str, Any]:
        """New access token + a stored refresh token (caller commits)."""
        access_token = await self.security.create_access_token(
            str(user.id), user.role, user.token_version
        )
        refresh_token = self.security.generate_refresh_token()
        self.db.add(
            RefreshTokens(
                user_id=user.id,
                token_hash=self.security.hash_token(refresh_token),
                expires_at=get_now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            )
        )
        self._set_access_cookie(res, access_token)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    async def _revoke_all_sessions(self, user: User) -> None:
        await self.db.execute(
            update(RefreshTokens)
            .where(RefreshTokens.user_id == user.id, RefreshTokens.revoked_at.is_(None))
            .values(revoked_at=get_now(), revoked_reason=RefreshRevokeReason.REVOKED.value)
        )

    async def _issue_one_time_token(self, user: User, purpose: TokenPurpose) -> str:
        # an older unused token of the same purpose stops working
        await self.db.execute(
            update(OneTimeTokens)
            .where(
                OneTimeTokens.user_id == user.id,
                OneTimeTokens.purpose == purpose.value,
                OneTimeTokens.used_at.is_(None),
            )
            .values(used_at=get_now())
        )
        if purpose is TokenPurpose.PASSWORD_RESET:
            lifetime = timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        else:
            lifetime = timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS)

        token = self.security.generate_one_time_token()
        self.db.add(
            OneTimeTokens(
                user_id=user.id,
                purpose=purpose.value,
                token_hash=self.security.hash_token(token),
                expires_at=get_now() + lifetime,
            )
        )
        return token

    async def _consume_one_time_token(self, token: str, purpose: TokenPurpose) -> User:
        record = await self.db.scalar(
            select(OneTimeTokens).where(
                OneTimeTokens.token_hash == self.security.hash_token(token),
                OneTimeTokens.purpose == purpose.value,
            )
        )
        if not record or record.used_at is not None or record.expires_at < get_now():
            raise ValidationException("Token is invalid or expired", error_code="INVALID_TOKEN")

        user = await self.db.get(User, record.user_id)
        if not user:
            raise ValidationException("Token is invalid or expired", error_code="INVALID_TOKEN")

        record.used_at = get_now()
        return user

    async def _send_mail(self, coro) -> None:
        # the account change is already committed; a mail outage must not undo it
        try:
            await coro
        except Exception as e:
            logger.exception(f"💥 Email delivery failed: {e}")

    # ==============================
    # 📝 REGISTER / VERIFY
    # ==============================

    async def register_async(self, schema: RegisterUser) -> dict[str, Any]:
        try:
            email = self._normalize_email(schema.email)
            if await self._get_user_by_email(email):
                raise DuplicateIdentityException()

            # 1️⃣ create the account
            new_user = User(
                name=schema.name.strip(),
                email=email,
                password_hash=await self.security.hash_password(schema.password),
                role=UserRole.USER.value,
                status=UserStatus.UNVERIFIED.value,
            )
            self.db.add(new_user)
            await self.db.flush()

            # 2️⃣ verification token
            token = await self._issue_one_time_token(new_user, TokenPurpose.EMAIL_VERIFICATION)
            await self.db.commit()
            await self.db.refresh(new_user)
        except IntegrityError:
            # lost a race on the unique email
            await self.db.rollback()
            raise DuplicateIdentityException()
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"🆕 Registered {new_user.email}")
        await self._send_mail(
            self.mail_service.send_verification_email(
                new_user.email,
                new_user.name,
                f"{settings.FRONTEND_URL}/verify-email?token={token}",
            )
        )
        return {"user": UserOut.model_validate(new_user).model_dump(mode="json")}

    async def verify_email_async(self, schema: VerifyEmail) -> dict[str, Any]:
        try:
            user = await self._consume_one_time_token(schema.token, TokenPurpose.EMAIL_VERIFICATION)
            if user.email_verified_at is None:
                user.email_verified_at = get_now()
            if user.status == UserStatus.UNVERIFIED.value:
                user.status = UserStatus.ACTIVE.value
            await self.db.commit()
            await self.db.refresh(user)
            logger.info(f"✅ Email verified for {user.email}")
            return {"user": UserOut.model_validate(user).model_dump(mode="json")}
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def resend_verification_async(self, schema: ResendVerification) -> None:
        try:
            user = await self._get_user_by_email(schema.email)
            if not user or user.status != UserStatus.UNVERIFIED.value:
                return None
            token = await self._issue_one_time_token(user, TokenPurpose.EMAIL_VERIFICATION)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self._send_mail(
            self.mail_service.send_verification_email(
                user.email, user.name, f"{settings.FRONTEND_URL}/verify-email?token={token}"
            )
        )

    # ==============================
    # 🔑 LOGIN / SESSIONS
    # ==============================

    async def login_async(self, schema: LoginUser, res: Response) -> dict[str, Any]:
        try:
            user = await self._get_user_by_email(schema.email)

            # 1️⃣ unknown email and wrong password look the same
            if not user or not await self.security.verify_password(
                schema.password, user.password_hash
            ):
                logger.warning(f"🔒 Failed login for {schema.email}")
                raise InvalidCredentialsException()

            # 2️⃣ suspended
            if user.status == UserStatus.SUSPENDED.value:
                raise ForbiddenException("Account is suspended", error_code="ACCOUNT_SUSPENDED")

            # 3️⃣ email not verified
            if (
                settings.REQUIRE_EMAIL_VERIFICATION
                and user.status == UserStatus.UNVERIFIED.value
            ):
                raise ForbiddenException(
                    "Please verify your email before logging in",
                    error_code="EMAIL_NOT_VERIFIED",
                )

            # 4️⃣ tokens
            tokens = await self._issue_session(user, res)
            user.last_login_at = get_now()
            await self.db.commit()
            await self.db.refresh(user)
            logger.info(f"🔓 Login {user.email} ({user.role})")
            return {**tokens, "user": UserOut.model_validate(user).model_dump(mode="json")}
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def refresh_token_async(self, token: str, res: Response) -> dict[str, Any]:
        try:
            record = await self.db.scalar(
                select(RefreshTokens).where(
                    RefreshTokens.token_hash == self.security.hash_token(token)
                )
            )
            if not record:
                raise InvalidTokenException("Refresh token is invalid or expired")

            user = await self.db.get(User, record.user_id)
            if not user:
                raise InvalidTokenException("Refresh token is invalid or expired")

            # a rotated token came back: treat every session of this user as stolen
            if record.revoked_reason == RefreshRevokeReason.ROTATED.value:
                await self._revoke_all_sessions(user)
                user.token_version += 1
                await self.db.commit()
                logger.warning(f"🚨 Refresh token reuse for {user.email}, all sessions revoked")
                raise InvalidTokenException("Refresh token has been revoked")

            if record.revoked_at is not None:
                raise InvalidTokenException("Refresh token has been revoked")

            if record.expires_at < get_now():
                raise InvalidTokenException("Refresh token is invalid or expired")

            if user.status == UserStatus.SUSPENDED.value:
                raise ForbiddenException("Account is suspended", error_code="ACCOUNT_SUSPENDED")

            record.revoked_at = get_now()
            record.revoked_reason = RefreshRevokeReason.ROTATED.value
            tokens = await self._issue_session(user, res)
            await self.db.commit()
            return tokens
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def logout_async(self, schema: LogoutIn, res: Response) -> None:
        try:
            if schema.refresh_token:
                record = await self.db.scalar(
                    select(RefreshTokens).where(
                        RefreshTokens.token_hash == self.security.hash_token(schema.refresh_token)
                    )
                )
                if record:
                    if record.revoked_at is None:
                        record.revoked_at = get_now()
                        record.revoked_reason = RefreshRevokeReason.LOGOUT.value
                    if schema.all_devices:
                        user = await self.db.get(User, record.user_id)
                        if user:
                            await self._revoke_all_sessions(user)
                            user.token_version += 1
                            logger.info(f"👋 {user.email} logged out of all devices")
                    await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        finally:
            res.delete_cookie(key=ACCESS_COOKIE, httponly=True, samesite="lax", path="/")

    # ==============================
    # 🔁 PASSWORD RESET
    # ==============================

    async def forgot_password_async(self, schema: ForgotPassword) -> None:
        """Same answer whether or not the email exists."""
        try:
            user = await self._get_user_by_email(schema.email)
            if not user or user.status == UserStatus.SUSPENDED.value:
                return None
            token = await self._issue_one_time_token(user, TokenPurpose.PASSWORD_RESET)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self._send_mail(
            self.mail_service.send_reset_password_email(
                user.email, user.name, f"{settings.FRONTEND_URL}/reset-password?token={token}"
            )
        )

    async def reset_password_async(self, schema: ResetPassword) -> None:
        try:
            user = await self._consume_one_time_token(schema.token, TokenPurpose.PASSWORD_RESET)
            user.password_hash = await self.security.hash_password(schema.new_password)
            user.token_version += 1
            await self._revoke_all_sessions(user)
            await self.db.commit()
            logger.info(f"🔁 Password reset for {user.email}")
        except HTTPException:
            raise
        except Exception:
            await self.db.rollback()
            raise

    # ==============================
    # 👤 ME
    # ==============================

    async def me_async(self, user: User) -> dict[str, Any]:
        return UserOut.model_validate(user).model_dump(mode="json")


async def purge_expired_tokens(db: AsyncSession) -> dict[str, int]:
    """Drop refresh tokens past expiry and one-time tokens that are used or expired."""
    moment = get_now()
    try:
        refresh = await db.execute(delete(RefreshTokens).where(RefreshTokens.expires_at < moment))
        one_time = await db.execute(
            delete(OneTimeTokens).where(
                or_(OneTimeTokens.expires_at < moment, OneTimeTokens.used_at.is_not(None))
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return {"refresh_tokens": refresh.rowcount or 0, "one_time_tokens": one_time.rowcount or 0}
