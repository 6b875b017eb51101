from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base of every error the API raises on purpose.

    ``error_code`` is a stable machine readable tag sent to clients next to
    the human message.
    """

    status_code_default = status.HTTP_400_BAD_REQUEST
    error_code_default = "BAD_REQUEST"

    def __init__(
        self,
        detail: str,
        error_code: str | None = None,
        status_code: int | None = None,
        errors: Any = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=detail,
            headers=headers,
        )
        self.error_code = error_code or self.error_code_default
        self.errors = errors


class ValidationException(AppException):
    status_code_default = status.HTTP_400_BAD_REQUEST
    error_code_default = "VALIDATION_ERROR"


class UnauthorizedException(AppException):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    error_code_default = "UNAUTHORIZED"

    def __init__(self, detail: str = "Authentication required", **kwargs):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(detail, **kwargs)


class InvalidCredentialsException(UnauthorizedException):
    error_code_default = "INVALID_CREDENTIALS"

    def __init__(self, detail: str = "Invalid email or password", **kwargs):
        super().__init__(detail, **kwargs)


class InvalidTokenException(UnauthorizedException):
    error_code_default = "INVALID_TOKEN"

    def __init__(self, detail: str = "Token is invalid or expired", **kwargs):
        super().__init__(detail, **kwargs)


class ForbiddenException(AppException):
    status_code_default = status.HTTP_403_FORBIDDEN
    error_code_default = "FORBIDDEN"

    def __init__(self, detail: str = "Permission denied", **kwargs):
        super().__init__(detail, **kwargs)


class NotFoundException(AppException):
    status_code_default = status.HTTP_404_NOT_FOUND
    error_code_default = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", resource_id: Any = None, **kwargs):
        detail = (
            f"{resource} with id {resource_id} not found"
            if resource_id is not None
            else f"{resource} not found"
        )
        super().__init__(detail, **kwargs)


class ConflictException(AppException):
    status_code_default = status.HTTP_409_CONFLICT
    error_code_default = "CONFLICT"


class DuplicateIdentityException(ConflictException):
    error_code_default = "DUPLICATE_IDENTITY"

    def __init__(self, detail: str = "Email already registered", **kwargs):
        super().__init__(detail, **kwargs)


class UpstreamException(AppException):
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code_default = "UPSTREAM_FAILURE"

    def __init__(self, detail: str = "Service temporarily unavailable", **kwargs):
        super().__init__(detail, **kwargs)
