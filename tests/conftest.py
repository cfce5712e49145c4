import itertools
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from core.database import create_tables, make_engine, make_sessionmaker
from models.follow import Follow
from models.user import User
from schemas.battle import SeriesRef
from services.battle_engine import BattleEngine


class FakeClock:
    """Часы, которые двигаются только вручную."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture
async def db_engine():
    engine = make_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_sessionmaker(db_engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def battle_engine(db, clock):
    return BattleEngine(db, clock=clock)


@pytest.fixture
def series():
    return SeriesRef(tmdb_id=1399, title="Game of Thrones", poster_path="/got.jpg")


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    async def _make(handle: str | None = None) -> User:
        n = next(counter)
        user = User(handle=handle or f"critic{n}", name=f"Critic {n}")
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def follow(db):
    async def _follow(follower: User, following: User) -> None:
        db.add(Follow(follower_id=follower.id, following_id=following.id))
        await db.commit()

    return _follow


@pytest.fixture
def make_battle(battle_engine, series):
    async def _make(creator: User, duration_hours: float = 1, is_public: bool = True):
        return await battle_engine.create_battle(
            creator.id,
            "Финал сериала испортил всё",
            "Обсуждаем последний сезон",
            duration_hours,
            is_public,
            series,
        )

    return _make


@pytest.fixture
def like_times(battle_engine):
    async def _like(comment_id: int, users) -> None:
        for user in users:
            assert await battle_engine.toggle_comment_like(comment_id, user.id) is True

    return _like

