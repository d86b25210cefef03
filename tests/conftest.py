"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL. The
test ``db`` session and the app's request sessions share one connection
(``StaticPool``): commit seeded rows before calling the API, and reload
rows through :func:`reload` after the API changed them.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from backend.common.constants import EmploymentStatus, PostingStatus, SchoolStatus, UserRole
from backend.database import Base, get_db
from backend.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Employee → EmployeePosting, Invoice → InvoiceItem)
import backend.auth.models  # noqa: F401
import backend.common.audit  # noqa: F401
import backend.employees.models  # noqa: F401
import backend.schools.models  # noqa: F401
import backend.postings.models  # noqa: F401
import backend.leave.models  # noqa: F401
import backend.invoices.models  # noqa: F401
import backend.payments.models  # noqa: F401
import backend.ledger.models  # noqa: F401

from backend.auth.models import User
from backend.auth.service import AuthService
from backend.employees.models import Employee
from backend.postings.models import EmployeePosting
from backend.postings.schemas import PostingCreate
from backend.postings.service import PostingService
from backend.schools.models import School

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


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
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


async def reload(db: AsyncSession, model: Any, pk: uuid.UUID) -> Any:
    """Re-read a row, overwriting whatever the session had cached."""
    result = await db.execute(
        select(model).where(model.id == pk).execution_options(populate_existing=True)
    )
    return result.scalars().one()


# ── Model factories ─────────────────────────────────────────────────

def _make_school(
    *,
    name: str = "Green Valley School",
    code: Optional[str] = None,
    city: str = "Pune",
    trainers_required: int = 2,
    status: SchoolStatus = SchoolStatus.active,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        code=code or f"SCH-{uuid.uuid4().hex[:6].upper()}",
        city=city,
        trainers_required=trainers_required,
        status=status,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_employee(
    *,
    full_name: str = "Test Trainer",
    email: Optional[str] = None,
    designation: str = "Robotics Trainer",
    date_of_joining: date = date(2024, 1, 15),
) -> dict:
    code = f"TR-{uuid.uuid4().hex[:6].upper()}"
    return dict(
        id=uuid.uuid4(),
        employee_code=code,
        full_name=full_name,
        email=email or f"{code.lower()}@staffing.example.org",
        designation=designation,
        date_of_joining=date_of_joining,
        employment_status=EmploymentStatus.active,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


async def seed_school(db: AsyncSession, **kwargs) -> School:
    school = School(**_make_school(**kwargs))
    db.add(school)
    await db.flush()
    return school


async def seed_employee(db: AsyncSession, **kwargs) -> Employee:
    employee = Employee(**_make_employee(**kwargs))
    db.add(employee)
    await db.flush()
    return employee


async def seed_posting(
    db: AsyncSession,
    employee: Employee,
    school: School,
    *,
    billing: Decimal = Decimal("50000"),
    start_date: date = date(2026, 4, 1),
    status: PostingStatus = PostingStatus.continue_,
) -> EmployeePosting:
    """Create a posting through the service, so it is reconciled."""
    posting, _ = await PostingService.create_posting(
        db,
        PostingCreate(
            employee_id=employee.id,
            school_id=school.id,
            monthly_billing_salary=billing,
            start_date=start_date,
            status=status,
        ),
    )
    return posting


@pytest.fixture
async def school(db) -> School:
    s = await seed_school(db, name="Alpha Public School")
    await db.commit()
    return s


@pytest.fixture
async def school_b(db) -> School:
    s = await seed_school(db, name="Beta International School")
    await db.commit()
    return s


@pytest.fixture
async def employee(db) -> Employee:
    e = await seed_employee(db, full_name="Ravi Kumar")
    await db.commit()
    return e


# ── Auth helpers ────────────────────────────────────────────────────

async def seed_user(
    db: AsyncSession,
    *,
    role: UserRole = UserRole.hr,
    email: Optional[str] = None,
) -> User:
    return await AuthService.create_user(
        db,
        name=f"{role.value.title()} User",
        email=email or f"{role.value}.{uuid.uuid4().hex[:6]}@staffing.example.org",
        role=role,
    )


async def headers_for(db: AsyncSession, user: User) -> dict[str, str]:
    """Issue a token with a persisted session and return Bearer headers."""
    token = await AuthService.issue_access_token(db, user)
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def hr_user(db) -> User:
    user = await seed_user(db, role=UserRole.hr)
    await db.commit()
    return user


@pytest.fixture
async def auth_headers(db, hr_user) -> dict[str, str]:
    """Bearer headers for an **hr** user."""
    return await headers_for(db, hr_user)


@pytest.fixture
async def admin_headers(db) -> dict[str, str]:
    user = await seed_user(db, role=UserRole.admin)
    return await headers_for(db, user)


@pytest.fixture
async def accounts_headers(db) -> dict[str, str]:
    user = await seed_user(db, role=UserRole.accounts)
    return await headers_for(db, user)
