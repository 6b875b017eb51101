import os

os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["DATABASE_ASYNC_URL"] = "sqlite+aiosqlite:///./.pytest-placeholder.db"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ["REQUIRE_EMAIL_VERIFICATION"] = "true"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.enum import UserRole, UserStatus
from app.core.rate_limit import limiter
from app.core.security import SecurityService
from app.db.models.database import User
from app.db.models.init_db import create_all
from app.db.session import build_engine, build_session_factory, get_session_factory
from app.libs.formats.datetime import now as get_now
from app.main import app
from app.services.shares.auth import get_mailer_service
from app.services.shares.content_store import ContentStore, get_content_store

PASSWORD = "s3cret-pass"


class RecordingMailer:
    """Stands in for MailerService and keeps every message it was asked to send."""

    def __init__(self):
        self.sent: list[dict] = []

    async def send_verification_email(self, email: str, name: str, verify_link: str):
        self.sent.append({"kind": "verify", "email": email, "link": verify_link})

    async def send_reset_password_email(self, email: str, name: str, reset_link: str):
        self.sent.append({"kind": "reset", "email": email, "link": reset_link})

    def last_token(self, kind: str) -> str:
        link = next(m["link"] for m in reversed(self.sent) if m["kind"] == kind)
        return link.split("token=", 1)[1]


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(tmp_path):
    return ContentStore(root=tmp_path / "content")


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest_asyncio.fixture
async def client(session_factory, store, mailer):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_content_store] = lambda: store
    app.dependency_overrides[get_mailer_service] = lambda: mailer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    async def _make_user(
        email: str,
        role: UserRole = UserRole.USER,
        status: UserStatus = UserStatus.ACTIVE,
        password: str = PASSWORD,
        name: str = "Test User",
    ) -> User:
        async with session_factory() as db:
            user = User(
                name=name,
                email=email,
                password_hash=await SecurityService.hash_password(password),
                role=role.value,
                status=status.value,
                email_verified_at=get_now() if status is UserStatus.ACTIVE else None,
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

    return _make_user


async def bearer(user: User) -> dict[str, str]:
    token = await SecurityService().create_access_token(str(user.id), user.role, user.token_version)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("admin@example.com", role=UserRole.ADMIN, name="Admin")


@pytest_asyncio.fixture
async def student(make_user):
    return await make_user("student@example.com", name="Student")


@pytest_asyncio.fixture
async def admin_headers(admin):
    return await bearer(admin)


@pytest_asyncio.fixture
async def student_headers(student):
    return await bearer(student)


@pytest.fixture
def headers_for():
    return bearer
