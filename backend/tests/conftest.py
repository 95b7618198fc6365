"""
CampusQA - Test Configuration and Fixtures
"""
import os
from types import SimpleNamespace
from typing import AsyncGenerator, Awaitable, Callable
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_campusqa.db'
os.environ['JWT_ACCESS_SECRET'] = 'test-access-secret-for-testing-only'
os.environ['JWT_REFRESH_SECRET'] = 'test-refresh-secret-for-testing-only'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['TOKEN_HASH_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_LEVEL'] = 'WARNING'

from app.main import app
from app.core.database import Base, get_db
from app.core.security import get_password_hash, create_access_token
from app import models  # noqa: F401  register tables on the metadata
from app.models.user import User

fake = Faker()

TEST_PASSWORD = 'Campus#2024pass'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_campusqa.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


def bearer(user_id: str) -> dict:
    """Authorization header carrying a fresh access token"""
    return {'Authorization': f'Bearer {create_access_token(user_id)}'}


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def signup_payload() -> dict:
    """Valid signup body"""
    return {
        'name': fake.name()[:80],
        'department': 'Computer Science',
        'year': 2,
        'rollNumber': f"21CS{fake.unique.random_int(min=100, max=999)}",
        'email': fake.unique.email(),
        'mobileNumber': '9876543210',
        'password': TEST_PASSWORD,
        'confirmPassword': TEST_PASSWORD,
    }


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[SimpleNamespace]]:
    """
    Factory inserting a user directly.

    Returns a plain namespace (id, email, roll_number, headers) so tests keep
    working after the shared session rolls back and expires ORM instances.
    """
    async def _make_user(joined: bool = True, year: int = 2, **overrides) -> SimpleNamespace:
        user = User(
            name=overrides.pop('name', fake.name()[:80]),
            department=overrides.pop('department', 'Computer Science'),
            year=year,
            roll_number=overrides.pop('roll_number', f"R{fake.unique.random_int(min=10000, max=99999)}"),
            email=overrides.pop('email', fake.unique.email()),
            mobile_number='9876543210',
            password_hash=get_password_hash(TEST_PASSWORD),
            joined_community=joined,
            **overrides
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return SimpleNamespace(
            id=user.id,
            email=user.email,
            roll_number=user.roll_number,
            headers=bearer(user.id),
        )

    return _make_user


@pytest.fixture
async def member(make_user) -> SimpleNamespace:
    """A user who has joined the community"""
    return await make_user(joined=True)


@pytest.fixture
async def outsider(make_user) -> SimpleNamespace:
    """An authenticated user who has not joined the community"""
    return await make_user(joined=False)


async def reload_user(db_session: AsyncSession, user_id: str) -> User:
    """Read a user's current row, bypassing stale identity-map state"""
    return await db_session.get(User, user_id, populate_existing=True)
