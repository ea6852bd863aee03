"""Shared test fixtures — async DB, client, factories.

Reusable across all test modules (check-ins, leave, absences, summaries,
grading). Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.

All seeded companies run on UTC so that local days equal UTC days unless a
test sets another timezone explicitly. Week used throughout:
2026-03-02 is a Monday, 2026-03-07/08 the weekend.
"""

from __future__ import annotations

import os

# Keep app logging quiet before pydantic-settings loads
os.environ.setdefault("LOG_LEVEL", "warning")

import uuid
from datetime import date, datetime, time, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from teamready.checkins.readiness import readiness_status
from teamready.common.constants import (
    DEFAULT_WORK_DAYS,
    AbsenceStatus,
    ExceptionStatus,
    ExceptionType,
    UserRole,
)
from teamready.database import Base, build_engine, get_db, session_scope
from teamready.main import create_app

# Import ALL model modules so every table is on Base.metadata
import teamready.common.audit  # noqa: F401
import teamready.organization.models  # noqa: F401
import teamready.checkins.models  # noqa: F401
import teamready.leave.models  # noqa: F401
import teamready.absences.models  # noqa: F401
import teamready.summaries.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/CHAR ───────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = build_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)



@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Provide the Postgres server functions used by column defaults."""
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
    """Fresh schema per test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Recalculation endpoints are rate limited; start every test with an empty window."""
    from teamready.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with session_scope(TestSessionFactory) as session:
        yield session


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """App whose get_db dependency points at the in-memory database."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """httpx client speaking ASGI to the app under test."""
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

def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def _make_company(*, name: str = "Northwind Logistics", tz: str = "UTC") -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        timezone=tz,
        is_active=True,
        created_at=utc(2026, 1, 5),
    )


def _make_team(
    *,
    company_id: uuid.UUID,
    name: str = "Warehouse A",
    leader_id: Optional[uuid.UUID] = None,
    work_days: str = DEFAULT_WORK_DAYS,
    shift_end: time = time(17, 0),
) -> dict:
    return dict(
        id=uuid.uuid4(),
        company_id=company_id,
        name=name,
        work_days=work_days,
        shift_start=time(8, 0),
        shift_end=shift_end,
        leader_id=leader_id,
        is_active=True,
        created_at=utc(2026, 1, 5),
    )


def _make_user(
    *,
    company_id: uuid.UUID,
    team_id: Optional[uuid.UUID] = None,
    role: UserRole = UserRole.worker,
    first_name: str = "Test",
    last_name: str = "Worker",
    team_joined_at: Optional[datetime] = None,
    user_id: Optional[uuid.UUID] = None,
) -> dict:
    return dict(
        id=user_id or uuid.uuid4(),
        company_id=company_id,
        team_id=team_id,
        email=f"{first_name.lower()}.{uuid.uuid4().hex[:8]}@northwind.test",
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
        team_joined_at=team_joined_at or utc(2026, 3, 1, 9),
        total_checkins=0,
        current_streak=0,
        longest_streak=0,
        created_at=utc(2026, 2, 20),
    )


def _make_checkin(
    *,
    user_id: uuid.UUID,
    company_id: uuid.UUID,
    created_at: datetime,
    score: int = 80,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        user_id=user_id,
        company_id=company_id,
        mood=8,
        stress=2,
        sleep=8,
        physical_health=8,
        readiness_score=score,
        readiness_status=readiness_status(score),
        checkin_date=created_at.astimezone(timezone.utc).date(),
        created_at=created_at,
    )


def _make_exception(
    *,
    user_id: uuid.UUID,
    company_id: uuid.UUID,
    start_date: date,
    end_date: date,
    status: ExceptionStatus = ExceptionStatus.approved,
    type: ExceptionType = ExceptionType.personal_leave,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        user_id=user_id,
        company_id=company_id,
        type=type,
        status=status,
        start_date=start_date,
        end_date=end_date,
        reason="Family matters",
        created_at=utc(2026, 2, 25),
    )


def _make_absence(
    *,
    user_id: uuid.UUID,
    team_id: uuid.UUID,
    company_id: uuid.UUID,
    absence_date: date,
    status: AbsenceStatus = AbsenceStatus.pending_justification,
    justified_at: Optional[datetime] = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        user_id=user_id,
        team_id=team_id,
        company_id=company_id,
        absence_date=absence_date,
        status=status,
        justified_at=justified_at,
        created_at=utc(2026, 3, 1),
        updated_at=utc(2026, 3, 1),
    )


# ── Seed helpers ────────────────────────────────────────────────────

async def _seed_checkin(db: AsyncSession, user: dict, created_at: datetime, score: int = 80):
    from teamready.checkins.models import Checkin

    checkin = Checkin(
        **_make_checkin(
            user_id=user["id"],
            company_id=user["company_id"],
            created_at=created_at,
            score=score,
        )
    )
    db.add(checkin)
    await db.flush()
    return checkin


async def _seed_exception(db: AsyncSession, user: dict, start_date: date, end_date: date, **kw):
    from teamready.leave.models import LeaveException

    exc = LeaveException(
        **_make_exception(
            user_id=user["id"],
            company_id=user["company_id"],
            start_date=start_date,
            end_date=end_date,
            **kw,
        )
    )
    db.add(exc)
    await db.flush()
    return exc


async def _seed_absence(db: AsyncSession, user: dict, absence_date: date, **kw):
    from teamready.absences.models import Absence

    absence = Absence(
        **_make_absence(
            user_id=user["id"],
            team_id=user["team_id"],
            company_id=user["company_id"],
            absence_date=absence_date,
            **kw,
        )
    )
    db.add(absence)
    await db.flush()
    return absence


async def _seed_holiday(db: AsyncSession, company_id: uuid.UUID, day: date, name: str = "Holiday"):
    from teamready.organization.models import Holiday

    holiday = Holiday(company_id=company_id, date=day, name=name, created_at=utc(2026, 1, 5))
    db.add(holiday)
    await db.flush()
    return holiday


async def _seed_user(db: AsyncSession, **kw) -> dict:
    from teamready.organization.models import User

    data = _make_user(**kw)
    db.add(User(**data))
    await db.flush()
    return data


# ── Fixtures ────────────────────────────────────────────────────────

@pytest.fixture
async def test_company(db) -> dict:
    """Insert a UTC company and return its data dict."""
    from teamready.organization.models import Company

    data = _make_company()
    db.add(Company(**data))
    await db.flush()
    return data


@pytest.fixture
async def test_team(db, test_company) -> dict:
    """Insert a MON–FRI team (shift ends 17:00) with a pre-assigned leader id."""
    from teamready.organization.models import Team

    data = _make_team(company_id=test_company["id"], leader_id=uuid.uuid4())
    db.add(Team(**data))
    await db.flush()
    return data


@pytest.fixture
async def test_leader(db, test_team) -> dict:
    """Insert the team leader (team_lead role, not on the check-in roster)."""
    return await _seed_user(
        db,
        company_id=test_team["company_id"],
        team_id=test_team["id"],
        role=UserRole.team_lead,
        first_name="Lena",
        last_name="Lead",
        user_id=test_team["leader_id"],
    )


@pytest.fixture
async def test_worker(db, test_team) -> dict:
    """Insert an active worker who joined the team on Sunday 2026-03-01."""
    return await _seed_user(
        db,
        company_id=test_team["company_id"],
        team_id=test_team["id"],
        first_name="Ana",
        last_name="Alpha",
    )


@pytest.fixture
async def second_worker(db, test_team) -> dict:
    return await _seed_user(
        db,
        company_id=test_team["company_id"],
        team_id=test_team["id"],
        first_name="Ben",
        last_name="Beta",
    )
