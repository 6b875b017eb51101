# app/core/policy.py
"""Route group -> access level.

Routers attach ``dependencies=guard("<group>")`` so enforcement is read from
this table only. ``USED_POLICIES`` records every group a router asked for,
which lets tests assert that no router is mounted without a policy.
"""
from enum import Enum

from fastapi import Depends

from app.core.deps import AuthorizationService
from app.core.enum import UserRole


class AccessLevel(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"
    USER = "user"
    ADMIN_OR_USER = "admin_or_user"


ROUTE_POLICIES: dict[str, AccessLevel] = {
    "auth": AccessLevel.PUBLIC,
    "auth.session": AccessLevel.AUTHENTICATED,
    "admin": AccessLevel.ADMIN,
    "analytics": AccessLevel.ADMIN,
    "student": AccessLevel.USER,
    "profile": AccessLevel.ADMIN_OR_USER,
    "notifications": AccessLevel.ADMIN_OR_USER,
    "secure_pdf.pdf": AccessLevel.ADMIN_OR_USER,
    "secure_pdf.cover": AccessLevel.PUBLIC,
}

ROLES_FOR_LEVEL: dict[AccessLevel, tuple[UserRole, ...]] = {
    AccessLevel.AUTHENTICATED: (),
    AccessLevel.ADMIN: (UserRole.ADMIN,),
    AccessLevel.USER: (UserRole.USER,),
    AccessLevel.ADMIN_OR_USER: (UserRole.ADMIN, UserRole.USER),
}

USED_POLICIES: set[str] = set()


def _enforcer(level: AccessLevel):
    roles = ROLES_FOR_LEVEL[level]

    async def enforce(authorization: AuthorizationService = Depends(AuthorizationService)):
        await authorization.require_any_role(roles)

    enforce.__name__ = f"require_{level.value}"
    return enforce


def guard(name: str) -> list:
    """Router-level dependencies for a policy group (KeyError if undeclared)."""
    level = ROUTE_POLICIES[name]
    USED_POLICIES.add(name)
    if level is AccessLevel.PUBLIC:
        return []
    return [Depends(_enforcer(level))]
