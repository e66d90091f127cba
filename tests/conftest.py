"""
Shared fixtures.

Every test gets its own in-memory database. Tests that need real concurrent
connections use `file_engine` instead, which gives each session its own
connection to a temporary SQLite file.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from streamhouse.core.canonical import canonicalize, detect_provider
from streamhouse.core.rate_limit import limiter, redirect_limiter
from streamhouse.db.models import EngagementEvent, House, Post, User
from streamhouse.db.session import get_session, init_db
from streamhouse.db.sqlite_adapter import SQLiteAdapter
from streamhouse.db.time import utcnow
from streamhouse.main import app


def make_session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture(autouse=True)
def reset_limiters():
    limiter.reset()
    redirect_limiter.reset()
    yield
    limiter.reset()
    redirect_limiter.reset()


@pytest.fixture
async def engine():
    engine = SQLiteAdapter().create_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_engine(tmp_path):
    engine = SQLiteAdapter().create_engine(f"sqlite+aiosqlite:///{tmp_path / 'streamhouse-test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class Factory:
    """Creates committed rows directly, bypassing the services."""

    def __init__(self, session):
        self.session = session
        self._counter = 0

    async def user(self, username: Optional[str] = None) -> User:
        self._counter += 1
        username = username or f"user{self._counter}"
        user = User(username=username, display_name=username.capitalize())
        self.session.add(user)
        await self.session.commit()
        return user

    async def house(self, owner: User, name: str = "Main House") -> House:
        house = House(name=name, owner_user_id=owner.id)
        self.session.add(house)
        await self.session.commit()
        return house

    async def post(
        self,
        owner: User,
        house: House,
        url: str = "https://www.youtube.com/watch?v=abc123",
        age: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> Post:
        provider = detect_provider(url)
        created_at = (now or utcnow()) - (age or timedelta(0))
        post = Post(
            owner_user_id=owner.id,
            house_id=house.id,
            original_url=url,
            canonical_url=canonicalize(url, provider),
            title="Content Post",
            provider=provider.value,
            created_at=created_at,
        )
        self.session.add(post)
        await self.session.commit()
        return post


@pytest.fixture
def factory(session):
    return Factory(session)


async def total_points(session, user_id: str) -> int:
    result = await session.execute(select(User.total_points).where(User.id == user_id))
    return result.scalar_one()


async def event_count(session, user_id: str, event_type: Optional[str] = None) -> int:
    statement = select(func.count(EngagementEvent.id)).where(EngagementEvent.user_id == user_id)
    if event_type is not None:
        statement = statement.where(EngagementEvent.type == event_type)
    result = await session.execute(statement)
    return result.scalar_one()


@pytest.fixture
def points_of():
    return total_points


@pytest.fixture
def events_of():
    return event_count


@pytest.fixture
def file_session_maker(file_engine):
    return make_session_maker(file_engine)
