"""
IRP API - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_FILE'] = ''
os.environ['GOOGLE_CLIENT_ID'] = 'test-google-client-id'
os.environ['GOOGLE_CLIENT_SECRET'] = 'test-google-client-secret'

from irp.main import app
from irp.core import database
from irp.core.database import Base, get_db
from irp.core.security import create_access_token
from irp.models import User, UserRole, Expert, Event, EventStatus, ActivityLog
from irp.services.activity_recorder import activity_recorder

fake = Faker()


def token_headers(user: User) -> dict:
    """Bearer headers for ``user``"""
    return {'Authorization': f'Bearer {create_access_token(str(user.id))}'}


@pytest.fixture
async def session_factory(tmp_path, monkeypatch) -> AsyncGenerator[async_sessionmaker, None]:
    """A fresh SQLite file per test, wired into the app and the recorder"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        json_serializer=database.json_serializer,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    monkeypatch.setattr(database, '_engine', engine)
    monkeypatch.setattr(database, '_async_session_local', factory)
    monkeypatch.setattr(activity_recorder, 'session_factory', factory)

    yield factory

    await activity_recorder.drain()
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by tests to arrange and inspect data"""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client; every request gets its own session like in production"""
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
def make_user(db_session: AsyncSession):
    """Factory for persisted accounts"""
    async def _make_user(role: UserRole = UserRole.COORDINATOR, **overrides) -> User:
        user = User(
            email=overrides.pop('email', fake.unique.email()),
            full_name=overrides.pop('full_name', fake.name()),
            role=role,
            is_active=overrides.pop('is_active', True),
            **overrides
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
async def test_user(make_user) -> User:
    """A coordinator"""
    return await make_user(UserRole.COORDINATOR)


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user(UserRole.ADMIN)


@pytest.fixture
def bearer():
    """Build auth headers for any account"""
    return token_headers


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return token_headers(test_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    return token_headers(admin_user)


@pytest.fixture
def make_expert(db_session: AsyncSession):
    """Factory for persisted experts"""
    async def _make_expert(added_by: User, **overrides) -> Expert:
        expert = Expert(
            name=overrides.pop('name', fake.name()),
            email=overrides.pop('email', fake.email()),
            phone=overrides.pop('phone', '9876543210'),
            company=overrides.pop('company', fake.company()[:200]),
            position=overrides.pop('position', 'Principal Engineer'),
            expertise=overrides.pop('expertise', ['Cloud Computing', 'DevOps']),
            added_by=str(added_by.id),
            **overrides
        )
        db_session.add(expert)
        await db_session.commit()
        await db_session.refresh(expert)
        return expert

    return _make_expert


@pytest.fixture
def make_event(db_session: AsyncSession):
    """Factory for persisted events"""
    async def _make_event(expert: Expert, coordinator: User, **overrides) -> Event:
        event = Event(
            title=overrides.pop('title', fake.sentence(nb_words=4)[:200]),
            description=overrides.pop('description', fake.paragraph()),
            expert_id=str(expert.id),
            coordinator_id=str(coordinator.id),
            created_by=str(coordinator.id),
            scheduled_date=overrides.pop('scheduled_date', datetime.utcnow() + timedelta(days=7)),
            start_time=overrides.pop('start_time', '10:00'),
            end_time=overrides.pop('end_time', '11:30'),
            venue=overrides.pop('venue', 'Main Auditorium'),
            capacity=overrides.pop('capacity', 50),
            status=overrides.pop('status', EventStatus.SCHEDULED),
            **overrides
        )
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def fetch(db_session: AsyncSession):
    """Reload a row from the database, bypassing the identity map"""
    async def _fetch(model, row_id):
        result = await db_session.execute(
            select(model).where(model.id == str(row_id)).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    return _fetch


@pytest.fixture
def activity_rows(db_session: AsyncSession):
    """All activity records, after waiting for pending writes"""
    async def _rows():
        await activity_recorder.drain()
        result = await db_session.execute(
            select(ActivityLog).order_by(ActivityLog.timestamp).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    return _rows
