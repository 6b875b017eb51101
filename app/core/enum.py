from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    UNVERIFIED = "unverified"


class RefreshRevokeReason(str, Enum):
    ROTATED = "rotated"
    LOGOUT = "logout"
    REVOKED = "revoked"


class ContentStatus(str, Enum):
    """Lifecycle of courses and books."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class LiveClassStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    ENDED = "ended"
    CANCELLED = "cancelled"


class EnrollmentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TokenPurpose(str, Enum):
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"


class NotificationType(str, Enum):
    SYSTEM = "system"
    ACCOUNT = "account"
    ENROLLMENT = "enrollment"
    PURCHASE = "purchase"
    LIVE_CLASS = "live_class"


class FileType(str, Enum):
    """Folders of the content store."""

    BOOK_PDF = "books/pdfs"
    BOOK_COVER = "books/covers"
    COURSE_THUMBNAIL = "courses/thumbnails"
    LIVE_CLASS_THUMBNAIL = "live-classes/thumbnails"
    AVATAR = "users/avatars"


# "Open" states take part in the one-per-pair uniqueness rule
OPEN_ENROLLMENT_STATUSES = (EnrollmentStatus.PENDING.value, EnrollmentStatus.ACTIVE.value)
OPEN_PURCHASE_STATUSES = (PurchaseStatus.PENDING.value, PurchaseStatus.COMPLETED.value)
STUDENT_VISIBLE_LIVE_CLASS_STATUSES = (
    LiveClassStatus.UPCOMING.value,
    LiveClassStatus.LIVE.value,
    LiveClassStatus.ENDED.value,
)


def values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]
