from typing import Any, Optional
import datetime
import uuid

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.libs.formats.datetime import now as get_now


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = 'users'
    __table_args__ = (
        UniqueConstraint('email', name='users_email_key'),
        CheckConstraint("role IN ('admin', 'user')", name='users_role_check'),
        CheckConstraint("status IN ('active', 'suspended', 'unverified')", name='users_status_check'),
        Index('idx_users_created_at', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default='user', server_default=text("'user'"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='unverified', server_default=text("'unverified'"))
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    bio: Mapped[Optional[str]] = mapped_column(Text)
    avatar_path: Mapped[Optional[str]] = mapped_column(String(500))
    preferences: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text('0'))
    email_verified_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    last_login_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)

    enrollments: Mapped[list['Enrollments']] = relationship('Enrollments', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)
    book_purchases: Mapped[list['BookPurchases']] = relationship('BookPurchases', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)
    notifications: Mapped[list['Notifications']] = relationship('Notifications', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)
    refresh_tokens: Mapped[list['RefreshTokens']] = relationship('RefreshTokens', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)
    one_time_tokens: Mapped[list['OneTimeTokens']] = relationship('OneTimeTokens', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)


class Courses(Base):
    __tablename__ = 'courses'
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published', 'archived')", name='courses_status_check'),
        CheckConstraint('price >= 0', name='courses_price_check'),
        Index('idx_courses_status_created', 'status', 'created_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    instructor: Mapped[Optional[str]] = mapped_column(String(120))
    category: Mapped[Optional[str]] = mapped_column(String(80))
    level: Mapped[Optional[str]] = mapped_column(String(40))
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    duration: Mapped[Optional[str]] = mapped_column(String(60))
    thumbnail_path: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='draft', server_default=text("'draft'"))
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey('users.id', ondelete='SET NULL'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)

    enrollments: Mapped[list['Enrollments']] = relationship('Enrollments', back_populates='course')


class Books(Base):
    __tablename__ = 'books'
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published', 'archived')", name='books_status_check'),
        CheckConstraint('price >= 0', name='books_price_check'),
        Index('idx_books_visibility', 'status', 'is_published'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    author: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(80))
    level: Mapped[Optional[str]] = mapped_column(String(40))
    pages: Mapped[Optional[int]] = mapped_column(Integer)
    isbn: Mapped[Optional[str]] = mapped_column(String(20))
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    pdf_path: Mapped[Optional[str]] = mapped_column(String(500))
    cover_image_path: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='draft', server_default=text("'draft'"))
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text('false'))
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey('users.id', ondelete='SET NULL'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)

    purchases: Mapped[list['BookPurchases']] = relationship('BookPurchases', back_populates='book')


class LiveClasses(Base):
    __tablename__ = 'live_classes'
    __table_args__ = (
        CheckConstraint("status IN ('upcoming', 'live', 'ended', 'cancelled')", name='live_classes_status_check'),
        CheckConstraint('price >= 0', name='live_classes_price_check'),
        Index('idx_live_classes_status_schedule', 'status', 'scheduled_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    instructor: Mapped[Optional[str]] = mapped_column(String(120))
    category: Mapped[Optional[str]] = mapped_column(String(80))
    level: Mapped[Optional[str]] = mapped_column(String(40))
    scheduled_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    meeting_link: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail_path: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='upcoming', server_default=text("'upcoming'"))
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey('users.id', ondelete='SET NULL'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)

    enrollments: Mapped[list['Enrollments']] = relationship('Enrollments', back_populates='live_class')


class Enrollments(Base):
    __tablename__ = 'enrollments'
    __table_args__ = (
        CheckConstraint(
            '(course_id IS NOT NULL AND live_class_id IS NULL) OR (course_id IS NULL AND live_class_id IS NOT NULL)',
            name='enrollments_target_check',
        ),
        CheckConstraint("status IN ('pending', 'active', 'completed', 'cancelled')", name='enrollments_status_check'),
        # one open enrollment per (user, course) and per (user, live class)
        Index(
            'uq_enrollments_open_course', 'user_id', 'course_id', unique=True,
            postgresql_where=text("course_id IS NOT NULL AND status IN ('pending', 'active')"),
            sqlite_where=text("course_id IS NOT NULL AND status IN ('pending', 'active')"),
        ),
        Index(
            'uq_enrollments_open_live_class', 'user_id', 'live_class_id', unique=True,
            postgresql_where=text("live_class_id IS NOT NULL AND status IN ('pending', 'active')"),
            sqlite_where=text("live_class_id IS NOT NULL AND status IN ('pending', 'active')"),
        ),
        Index('idx_enrollments_enrolled_at', 'enrolled_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    course_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey('courses.id', ondelete='CASCADE'))
    live_class_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey('live_classes.id', ondelete='CASCADE'))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    enrolled_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)

    user: Mapped['User'] = relationship('User', back_populates='enrollments')
    course: Mapped[Optional['Courses']] = relationship('Courses', back_populates='enrollments')
    live_class: Mapped[Optional['LiveClasses']] = relationship('LiveClasses', back_populates='enrollments')


class BookPurchases(Base):
    __tablename__ = 'book_purchases'
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'completed', 'cancelled')", name='book_purchases_status_check'),
        Index(
            'uq_book_purchases_open', 'user_id', 'book_id', unique=True,
            postgresql_where=text("status IN ('pending', 'completed')"),
            sqlite_where=text("status IN ('pending', 'completed')"),
        ),
        Index('idx_book_purchases_purchased_at', 'purchased_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    book_id: Mapped[int] = mapped_column(Integer, ForeignKey('books.id', ondelete='CASCADE'), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    purchased_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)

    user: Mapped['User'] = relationship('User', back_populates='book_purchases')
    book: Mapped['Books'] = relationship('Books', back_populates='purchases')


class Notifications(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        Index('idx_notifications_user_read', 'user_id', 'is_read'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default='system')
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)

    user: Mapped['User'] = relationship('User', back_populates='notifications')


class RefreshTokens(Base):
    __tablename__ = 'refresh_tokens'
    __table_args__ = (
        UniqueConstraint('token_hash', name='refresh_tokens_token_hash_key'),
        Index('idx_refresh_tokens_user', 'user_id'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    revoked_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    # rotated / logout / revoked, only reuse of a rotated token counts as theft
    revoked_reason: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)

    user: Mapped['User'] = relationship('User', back_populates='refresh_tokens')


class OneTimeTokens(Base):
    __tablename__ = 'one_time_tokens'
    __table_args__ = (
        UniqueConstraint('token_hash', name='one_time_tokens_token_hash_key'),
        CheckConstraint("purpose IN ('password_reset', 'email_verification')", name='one_time_tokens_purpose_check'),
        Index('idx_one_time_tokens_user_purpose', 'user_id', 'purpose'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    purpose: Mapped[str] = mapped_column(String(30), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    used_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)

    user: Mapped['User'] = relationship('User', back_populates='one_time_tokens')
