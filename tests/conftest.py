import uuid
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from policyflow.main import app
from policyflow.database import get_db, Base, create_engine
from policyflow.access.context import CallerContext
from policyflow.auth.models import Role, User
from policyflow.auth.security import create_session_token
from policyflow.departments.models import Department
from policyflow.policies.models import Policy, PolicyStatus, PolicyVersion, VisibilityType


# One SQLite file per test, with the same pragmas the service uses.


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'policyflow-test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client for testing API endpoints."""
    # One session per request, as in production
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_department(db_session):
    async def _make(name: Optional[str] = None, description: str = "") -> Department:
        department = Department(name=name or f"Dept {uuid.uuid4().hex[:6]}", description=description)
        db_session.add(department)
        await db_session.commit()
        return department
    return _make


@pytest_asyncio.fixture
async def make_user(db_session):
    async def _make(
        role: Role = Role.STAFF,
        department: Optional[Department] = None,
        email: Optional[str] = None,
        name: str = "Test User",
    ) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            role=role,
            department_id=department.id if department else None,
        )
        db_session.add(user)
        await db_session.commit()
        return user
    return _make


@pytest_asyncio.fixture
async def make_policy(db_session):
    """Insert a policy directly, optionally with a current version."""
    async def _make(
        title: str = "Remote Work Policy",
        status: PolicyStatus = PolicyStatus.PUBLISHED,
        visibility_type: VisibilityType = VisibilityType.ORGANIZATION,
        department: Optional[Department] = None,
        content: Optional[str] = "Work from anywhere, responsibly.",
    ) -> Policy:
        policy = Policy(
            title=title,
            status=status,
            visibility_type=visibility_type,
            department_id=department.id if department else None,
        )
        db_session.add(policy)
        await db_session.flush()
        if content is not None:
            version = PolicyVersion(policy_id=policy.id, content=content, version_string="v1.0.0", changelog="")
            db_session.add(version)
            await db_session.flush()
            policy.current_version_id = version.id
        await db_session.commit()
        return policy
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_session_token(user)}"}
    return _headers


@pytest.fixture
def caller_for():
    def _caller(user: User) -> CallerContext:
        return CallerContext.for_user(user)
    return _caller
