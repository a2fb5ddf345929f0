"""
Pytest configuration.

Environment is set before the application is imported so settings validate
without a .env file and logs go to a throwaway directory. Every test gets its
own SQLite database file.
"""
import os
import tempfile
from datetime import datetime, timezone

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="qr-exam-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'app.db')}"
os.environ["ADMIN_KEY"] = "test-admin-key"
os.environ["MARKER_KEY"] = "test-marker-key"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")

import httpx  # noqa: E402
from httpx import ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from app.api.v1.schemas.exam import CreateExam  # noqa: E402
from app.core.database import Base, build_engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import User  # noqa: E402
from app.services.exam import ExamService  # noqa: E402
from app.utils.clock import utcnow  # noqa: E402
from app.utils.roles import Role  # noqa: E402
from app.utils.security import hash_password  # noqa: E402

API = "/api/v1"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(anyio_backend, tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def client(anyio_backend, session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    async def _make_user(role: Role = Role.STUDENT, name: str | None = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        async with session_factory() as db:
            user = User(
                name=name or f"{role.value.title()} {n}",
                email=f"{role.value.lower()}{n}@example.edu",
                password=hash_password("secret"),
                role=role.value,
                created_at=utcnow(),
            )
            db.add(user)
            await db.commit()
            return user

    return _make_user


@pytest.fixture
def make_exam(session_factory):
    async def _make_exam(course_name: str = "Algorithms", date: datetime | None = None):
        async with session_factory() as db:
            return await ExamService.create_exam(
                CreateExam(course_name=course_name, date=date or datetime.now(timezone.utc)), db
            )

    return _make_exam
