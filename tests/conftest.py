import os
import uuid
from typing import AsyncGenerator, Dict, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.auth.models import Role, User
from app.auth.security import create_access_token
from app.core.models import AcademicSession, Faculty, Institution, InstitutionSchool, Rank, Route, SchoolGroup
from app.db.session import Base, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite://"

INSTITUTION_ID = uuid.UUID(int=1)
SESSION_ID = uuid.UUID(int=2)


def supervisor_id(n: int) -> uuid.UUID:
    return uuid.UUID(int=0x100 + n)


def school_id(n: int) -> uuid.UUID:
    return uuid.UUID(int=0x200 + n)


def route_id(n: int) -> uuid.UUID:
    return uuid.UUID(int=0x400 + n)


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """One in-memory SQLite database per test, shared by every connection through StaticPool."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def institution(db_session: AsyncSession) -> Institution:
    obj = Institution(id=INSTITUTION_ID, code="FCE-TEST", name="Federal College of Education (Test)")
    db_session.add(obj)
    await db_session.commit()
    return obj


@pytest.fixture()
async def academic_session(db_session: AsyncSession, institution: Institution) -> AcademicSession:
    obj = AcademicSession(
        id=SESSION_ID,
        institution_id=institution.id,
        name="2025/2026",
        max_supervision_visits=3,
        max_posting_per_supervisor=2,
        is_current=True,
    )
    db_session.add(obj)
    await db_session.commit()
    return obj


@pytest.fixture()
def make_supervisor(db_session: AsyncSession, institution: Institution):
    """Create a supervisor with its own rank. Supervisor n gets id 0x100 + n."""

    async def _make(
        n: int,
        name: Optional[str] = None,
        rank_weight: int = 0,
        role: str = "supervisor",
        status: str = "active",
        faculty_id: Optional[uuid.UUID] = None,
    ) -> User:
        rank = Rank(
            id=uuid.UUID(int=0x300 + n),
            institution_id=institution.id,
            name=f"Rank {n}",
            code=f"R{n}",
            priority_weight=rank_weight,
        )
        user = User(
            id=supervisor_id(n),
            institution_id=institution.id,
            name=name or f"Supervisor {n}",
            email=f"supervisor{n}@example.com",
            role=role,
            status=status,
            rank_id=rank.id,
            faculty_id=faculty_id,
        )
        db_session.add_all([rank, user])
        await db_session.commit()
        return user

    return _make


@pytest.fixture()
def make_route(db_session: AsyncSession, institution: Institution):
    async def _make(n: int, name: Optional[str] = None) -> Route:
        route = Route(id=route_id(n), institution_id=institution.id, name=name or f"Route {n}")
        db_session.add(route)
        await db_session.commit()
        return route

    return _make


@pytest.fixture()
def make_school(db_session: AsyncSession, institution: Institution, academic_session: AcademicSession):
    """Create a school with groups for the test session. groups maps group_number -> student_count."""

    async def _make(
        n: int,
        name: Optional[str] = None,
        distance_km: float = 0.0,
        route: Optional[Route] = None,
        lga: Optional[str] = None,
        groups: Optional[Dict[int, int]] = None,
        status: str = "active",
    ) -> InstitutionSchool:
        school = InstitutionSchool(
            id=school_id(n),
            institution_id=institution.id,
            name=name or f"School {n}",
            route_id=route.id if route else None,
            lga=lga,
            distance_km=distance_km,
            status=status,
        )
        db_session.add(school)
        for group_number, student_count in (groups if groups is not None else {1: 10}).items():
            db_session.add(
                SchoolGroup(
                    institution_id=institution.id,
                    session_id=academic_session.id,
                    school_id=school.id,
                    group_number=group_number,
                    student_count=student_count,
                )
            )
        await db_session.commit()
        return school

    return _make


@pytest.fixture()
async def faculty(db_session: AsyncSession, institution: Institution) -> Faculty:
    obj = Faculty(id=uuid.UUID(int=0x500), institution_id=institution.id, name="Faculty of Education")
    db_session.add(obj)
    await db_session.commit()
    return obj


@pytest.fixture()
async def head_of_tp(db_session: AsyncSession, institution: Institution) -> User:
    """Head of teaching practice with full posting permissions."""
    role = Role(
        institution_id=institution.id,
        name="head_of_tp",
        permissions={"posting": {"read": True, "create": True, "delete": True}},
    )
    user = User(
        id=uuid.UUID(int=0x900),
        institution_id=institution.id,
        name="Head of TP",
        email="head.tp@example.com",
        role="head_of_tp",
        status="active",
    )
    db_session.add_all([role, user])
    await db_session.commit()
    return user


def token_for(user: User) -> str:
    return create_access_token(
        subject={
            "user_id": str(user.id),
            "institution_id": str(user.institution_id),
            "role": user.role,
        }
    )


@pytest.fixture()
def auth_headers(head_of_tp: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(head_of_tp)}"}
