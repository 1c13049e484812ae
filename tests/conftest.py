import os

os.environ.setdefault("ENABLE_RATE_LIMITING", "false")
os.environ.setdefault("FACILITY_TIMEZONE", "UTC")
os.environ.setdefault("FACILITY_OPEN_HOUR", "6")
os.environ.setdefault("FACILITY_CLOSE_HOUR", "21")

from datetime import datetime, time, timedelta, timezone
from typing import List, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from squadsync_booking_platform.database import get_db
from squadsync_booking_platform.models import (
    Base,
    Court,
    Equipment,
    SportsClass,
    User,
    UserRole,
)
from squadsync_booking_platform.tasks import notification_tasks
from squadsync_booking_platform.utils.auth import issue_token_for


def future_window(days: int = 1, hour: int = 10, hours: int = 1) -> Tuple[datetime, datetime]:
    """A UTC window inside opening hours ``days`` from today."""
    day = datetime.now(timezone.utc).date() + timedelta(days=days)
    start = datetime.combine(day, time(hour=hour), tzinfo=timezone.utc)
    return start, start + timedelta(hours=hours)


class TaskRecorder:
    """Stands in for ``Task.delay`` and remembers the calls."""

    def __init__(self):
        self.calls: List[tuple] = []

    def __call__(self, *args, **kwargs):
        self.calls.append(args)


@pytest.fixture(autouse=True)
def queued_emails(monkeypatch):
    recorders = {
        "status": TaskRecorder(),
        "class_code": TaskRecorder(),
    }
    monkeypatch.setattr(notification_tasks.send_booking_status_email_task, "delay", recorders["status"])
    monkeypatch.setattr(notification_tasks.send_class_code_email_task, "delay", recorders["class_code"])
    return recorders


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


async def _make_user(session: AsyncSession, email: str, role: UserRole = UserRole.STUDENT, **kwargs) -> User:
    user = User(email=email, full_name=kwargs.pop("full_name", email.split("@")[0].title()), role=role, **kwargs)
    user.set_password("password123")
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def student(db_session) -> User:
    return await _make_user(db_session, "student@campus.edu", full_name="Sam Student")


@pytest_asyncio.fixture
async def other_student(db_session) -> User:
    return await _make_user(db_session, "other@campus.edu", full_name="Olive Other")


@pytest_asyncio.fixture
async def faculty(db_session) -> User:
    return await _make_user(db_session, "coach@campus.edu", UserRole.FACULTY, full_name="Casey Coach")


@pytest_asyncio.fixture
async def admin(db_session) -> User:
    return await _make_user(db_session, "admin@campus.edu", UserRole.ADMIN, full_name="Ada Admin")


@pytest_asyncio.fixture
async def representative(db_session) -> User:
    user = await _make_user(db_session, "rep@campus.edu", full_name="Riley Rep", is_representative=True)
    sports_class = SportsClass(
        name="Computer Science 3A",
        class_identifier="4CS23A",
        department="Computer Science",
        year=3,
        student_count=40,
        class_code="ABCD2345",
        representative_user_id=user.id,
    )
    db_session.add(sports_class)
    await db_session.flush()
    user.class_id = sports_class.id
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def court(db_session) -> Court:
    court = Court(
        name="Badminton Court 1",
        sport="Badminton",
        location="Indoor Hall",
        capacity=4,
        amenities=["lights"],
    )
    db_session.add(court)
    await db_session.commit()
    return court


@pytest_asyncio.fixture
async def rackets(db_session) -> Equipment:
    equipment = Equipment(
        name="Badminton Racket",
        category="Rackets",
        total_quantity=5,
        available_quantity=5,
    )
    db_session.add(equipment)
    await db_session.commit()
    return equipment


@pytest_asyncio.fixture
async def client(db_session):
    from squadsync_booking_platform.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token_for(user)}"}
