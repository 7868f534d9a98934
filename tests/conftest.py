"""
Pytest Configuration and Fixtures.

Every test gets a fresh in-memory SQLite database wired into the app through
a ``get_db`` override, so no PostgreSQL, Redis or S3 is needed.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RAZORPAY_KEY_ID"] = ""
os.environ["RAZORPAY_KEY_SECRET"] = ""
os.environ["SENTRY_DSN"] = ""
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["FRONTEND_URL"] = "https://notevault.test"

import uuid
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import notevault.modules  # noqa: F401
from notevault.core.database import get_db
from notevault.core.models import Base
from notevault.core.security import create_access_token, get_password_hash
from notevault.main import app
from notevault.modules.auth.models import User, UserSession
from notevault.modules.content.models import Category, University
from notevault.modules.notes.models import Note
from notevault.modules.notes.service import calculate_commission
from notevault.modules.payments.gateway import PaymentGateway, get_payment_gateway
from notevault.worker import celery_app

TEST_PASSWORD = "Password@123"

celery_app.conf.task_always_eager = True


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and calling services directly."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def gateway() -> PaymentGateway:
    """Unconfigured gateway: orders are mocked."""
    return PaymentGateway(key_id="", key_secret="")


@pytest.fixture
async def client(session_maker, gateway) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


class FakeStorage:
    """Stands in for the S3 client."""

    def __init__(self):
        self.uploaded: list[str] = []

    def upload_file(self, file_data, filename, content_type="application/octet-stream", folder="notes"):
        key = f"{folder}/{uuid.uuid4().hex}.pdf"
        self.uploaded.append(key)
        return key

    def get_presigned_url(self, object_key, expires_in=None, download_name=None, use_public_endpoint=True):
        return f"https://storage.notevault.test/{object_key}?X-Amz-Expires={expires_in}&name={download_name}"


@pytest.fixture
def storage(monkeypatch) -> FakeStorage:
    fake = FakeStorage()
    monkeypatch.setattr("notevault.modules.notes.service.get_storage_service", lambda: fake)
    return fake


# ============== Data ==============

@pytest.fixture
async def university(db_session) -> University:
    university = University(name="Delhi University", short_name="DU", city="New Delhi")
    db_session.add(university)
    await db_session.commit()
    return university


@pytest.fixture
async def category(db_session) -> Category:
    category = Category(name="Computer Science", slug="computer-science", icon="💻")
    db_session.add(category)
    await db_session.commit()
    return category


async def make_user(db_session, email: str, full_name: str = "Test User", **kwargs) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(TEST_PASSWORD),
        full_name=full_name,
        **kwargs,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def buyer(db_session) -> User:
    return await make_user(db_session, "buyer@notevault.app", "Priya Patel")


@pytest.fixture
async def seller(db_session) -> User:
    return await make_user(db_session, "seller@notevault.app", "Rahul Sharma", is_seller=True)


@pytest.fixture
async def admin(db_session) -> User:
    return await make_user(db_session, "admin@notevault.app", "Admin User", is_admin=True, is_seller=True)


async def make_note(
    db_session,
    seller: User,
    title: str = "Data Structures Notes",
    price_inr: float = 100,
    total_pages: int = 40,
    **kwargs,
) -> Note:
    pct, commission, earning = calculate_commission(price_inr, total_pages)
    fields = dict(
        seller_id=seller.id,
        title=title,
        description="Exam-focused notes",
        subject="Data Structures",
        degree="BTech",
        semester=3,
        total_pages=total_pages,
        price_inr=price_inr,
        commission_percentage=pct,
        commission_amount_inr=commission,
        seller_earning_inr=earning,
        file_url=f"notes/{seller.id}/{uuid.uuid4().hex}.pdf",
        file_type="pdf",
    )
    fields.update(kwargs)
    note = Note(**fields)
    db_session.add(note)
    await db_session.commit()
    return note


@pytest.fixture
async def note(db_session, seller, university, category) -> Note:
    return await make_note(db_session, seller, university_id=university.id, category_id=category.id)


def auth_headers(user: User, session: UserSession | None = None) -> dict[str, str]:
    extra = {"sid": str(session.id)} if session else None
    token = create_access_token(subject=str(user.id), extra_claims=extra)
    return {"Authorization": f"Bearer {token}"}
