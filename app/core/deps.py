# app/core/deps.py
import uuid
from typing import Iterable, Optional

from fastapi import Depends, Request
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import UserRole, UserStatus
from app.core.exceptions import (
    ForbiddenException,
    InvalidTokenException,
    UnauthorizedException,
)
from app.core.security import SecurityService
from app.db.models.database import User
from app.db.session import get_session


class AuthorizationService:
    def __init__(
        self,
        request: Request,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
    ):
        self.request = request
        self.db = db
        self.security = security

    # ==============================
    # 🧩 CORE AUTH CHECKS
    # ==============================

    def _extract_token(self) -> Optional[str]:
        """Bearer header first, then the access_token cookie."""
        request = self.request
        header = request.headers.get("authorization")
        if header:
            scheme, _, value = header.partition(" ")
            if scheme.lower() == "bearer" and value.strip():
                return value.strip()
            return None
        return request.cookies.get("access_token")

    async def get_current_user(self) -> User:
        request = self.request
        cached = getattr(request.state, "user", None)
        if cached is not None:
            return cached

        token = self._extract_token()
        if not token:
            raise UnauthorizedException("Access token not provided")

        try:
            payload = await self.security.decode_access_token(token)
            user_id = uuid.UUID(str(payload.get("sub")))
        except ValueError as e:
            raise InvalidTokenException(str(e))

        user = await self.db.get(User, user_id)
        if not user:
            raise InvalidTokenException("User no longer exists")

        # role/status changes, password resets and global logout bump the version
        if payload.get("ver") != user.token_version:
            raise InvalidTokenException("Token has been revoked")

        if user.status == UserStatus.SUSPENDED.value:
            raise ForbiddenException("Account is suspended", error_code="ACCOUNT_SUSPENDED")

        # ends the read transaction so the pooled connection is released
        await self.db.commit()
        request.state.user = user
        return user

    # ==============================
    # 🧩 ROLE-BASED ACCESS CONTROL
    # ==============================

    async def require_any_role(self, roles: Optional[Iterable[UserRole | str]] = None) -> User:
        current_user = await self.get_current_user()
        if not roles:
            return current_user

        allowed = {r.value if isinstance(r, UserRole) else r for r in roles}
        if current_user.role not in allowed:
            logger.warning(
                f"⛔ {current_user.email} ({current_user.role}) denied, needs one of {sorted(allowed)}"
            )
            raise ForbiddenException()
        return current_user


async def get_current_user(
    authorization: AuthorizationService = Depends(AuthorizationService),
) -> User:
    """Route helper: the identity resolved (and cached) by the policy guard."""
    return await authorization.get_current_user()
