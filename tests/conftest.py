"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
# Tests drive expiry explicitly; no background sweeper
os.environ.setdefault("ATTENDANCE_SWEEP_INTERVAL_SECONDS", "0")

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from backend.common.constants import AttendanceEntryStatus, UserRole
from backend.config import settings
from backend.database import Base, get_db
from backend.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import backend.common.audit  # noqa: F401
import backend.core_hr.models  # noqa: F401
import backend.attendance.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from backend.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

# Fixed reference instant: 2026-03-10 12:00 IST
NOW = datetime(2026, 3, 10, 6, 30, tzinfo=timezone.utc)


def _make_department(
    *,
    name: str = "Engineering",
    code: str = "ENG",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        code=code,
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )


def _make_employee(
    *,
    email: str = "test.user@example.com",
    first_name: str = "Test",
    last_name: str = "User",
    department_id: Optional[uuid.UUID] = None,
    is_active: bool = True,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        employee_code=f"EMP-{uuid.uuid4().hex[:6].upper()}",
        first_name=first_name,
        last_name=last_name,
        email=email,
        department_id=department_id,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
    )


async def _make_entry(
    db: AsyncSession,
    employee_id: uuid.UUID,
    *,
    clock_in: datetime,
    clock_out: Optional[datetime] = None,
    status: AttendanceEntryStatus = AttendanceEntryStatus.COMPLETED,
    work_summary: Optional[str] = "Reviewed pull requests",
    **extra,
):
    """Insert an entry directly, bypassing the clock commands."""
    from backend.attendance.models import AttendanceEntry
    from backend.attendance.timeutils import local_date

    entry = AttendanceEntry(
        employee_id=employee_id,
        date=local_date(clock_in),
        clock_in=clock_in,
        clock_out=clock_out,
        status=status,
        work_summary=work_summary if status != AttendanceEntryStatus.IN_PROGRESS else None,
        **extra,
    )
    db.add(entry)
    await db.flush()
    return entry


@pytest.fixture
async def test_department(db) -> dict:
    """Insert a test department."""
    from backend.core_hr.models import Department

    data = _make_department()
    db.add(Department(**data))
    await db.flush()
    return data


@pytest.fixture
async def test_employee(db, test_department) -> dict:
    """Insert an active employee in test_department."""
    from backend.core_hr.models import Employee

    data = _make_employee(department_id=test_department["id"])
    db.add(Employee(**data))
    await db.flush()
    return data


@pytest.fixture
async def admin_employee(db, test_department) -> dict:
    """Insert an active employee who acts as HR admin."""
    from backend.core_hr.models import Employee

    data = _make_employee(
        email="hr.admin@example.com",
        first_name="Hannah",
        last_name="Admin",
        department_id=test_department["id"],
    )
    db.add(Employee(**data))
    await db.flush()
    return data


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _make_auth_headers(employee_id, role=UserRole.employee) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(employee_id, role=role)}"}


@pytest.fixture
async def auth_headers(db, test_employee) -> dict[str, str]:
    """Bearer headers for test_employee (committed so the app session sees it)."""
    await db.commit()
    return _make_auth_headers(test_employee["id"])


@pytest.fixture
async def admin_headers(db, admin_employee) -> dict[str, str]:
    """Bearer headers for admin_employee with the hr_admin role."""
    await db.commit()
    return _make_auth_headers(admin_employee["id"], role=UserRole.hr_admin)
