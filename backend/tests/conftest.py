"""
SIWES Portal - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import AsyncGenerator, Awaitable, Callable, Optional

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Set testing environment before the app reads its settings
TEST_DIR = tempfile.mkdtemp(prefix="siwes-tests-")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{os.path.join(TEST_DIR, 'test.db')}"

os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = TEST_DATABASE_URL
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['TOKEN_CLEANUP_ENABLED'] = 'false'
os.environ['UPLOAD_PATH'] = os.path.join(TEST_DIR, 'uploads')
os.environ['LOG_FILE'] = os.path.join(TEST_DIR, 'logs', 'test.log')

from siwes_portal.main import app  # noqa: E402
from siwes_portal.core.database import Base, get_db  # noqa: E402
from siwes_portal.core.security import create_access_token, get_password_hash  # noqa: E402
from siwes_portal.models import Student, User, UserRole  # noqa: E402

fake = Faker()

DEFAULT_PASSWORD = 'password123'


@pytest_asyncio.fixture
async def test_engine():
    """Fresh schema for each test"""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting data directly"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client; every request gets its own session, as in production"""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                if session.new or session.dirty or session.deleted:
                    await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory for users of any role; students get their student record"""
    counter = {'matric': 0}

    async def _make_user(
        role: UserRole,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
        must_change_password: bool = False,
        matric_number: Optional[str] = None,
        department: str = 'Computer Science',
        industry_supervisor: Optional[User] = None,
        school_supervisor: Optional[User] = None,
    ) -> User:
        user = User(
            email=(email or f'{fake.unique.user_name()}@siwes.edu.ng').lower(),
            name=name or fake.name(),
            password_hash=get_password_hash(password),
            role=role,
            is_active=is_active,
            must_change_password=must_change_password,
        )
        db_session.add(user)
        await db_session.flush()

        if role == UserRole.STUDENT:
            counter['matric'] += 1
            db_session.add(Student(
                id=user.id,
                matric_number=matric_number or f"TST/2021/{counter['matric']:03d}",
                department=department,
                profile='',
                industry_supervisor_id=industry_supervisor.id if industry_supervisor else None,
                school_supervisor_id=school_supervisor.id if school_supervisor else None,
            ))

        await db_session.commit()
        return user

    return _make_user


@pytest_asyncio.fixture
async def admin_user(make_user) -> User:
    return await make_user(UserRole.ADMIN, email='admin@siwes.edu.ng', name='Portal Admin')


@pytest_asyncio.fixture
async def industry_supervisor(make_user) -> User:
    return await make_user(UserRole.INDUSTRY_SUPERVISOR, name='Ivy Industry')


@pytest_asyncio.fixture
async def school_supervisor(make_user) -> User:
    return await make_user(UserRole.SCHOOL_SUPERVISOR, name='Sam School')


@pytest_asyncio.fixture
async def student_user(make_user) -> User:
    """Student with no supervisors yet"""
    return await make_user(UserRole.STUDENT, matric_number='CSC/2021/001')


@pytest_asyncio.fixture
async def assigned_student(make_user, industry_supervisor, school_supervisor) -> User:
    """Student with both supervisors assigned"""
    return await make_user(
        UserRole.STUDENT,
        matric_number='CSC/2021/002',
        industry_supervisor=industry_supervisor,
        school_supervisor=school_supervisor,
    )


def headers_for(user: User) -> dict:
    """Bearer header with a fresh access token for a user"""
    token = create_access_token({'sub': str(user.id), 'role': user.role.value})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def student_headers(student_user: User) -> dict:
    return headers_for(student_user)


@pytest.fixture
def industry_headers(industry_supervisor: User) -> dict:
    return headers_for(industry_supervisor)


@pytest.fixture
def school_headers(school_supervisor: User) -> dict:
    return headers_for(school_supervisor)


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    """Build headers for users created inside a test"""
    return headers_for
