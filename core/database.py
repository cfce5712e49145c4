from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .config import settings


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Движок хранилища баттлов.
    PostgreSQL в проде, SQLite (aiosqlite) для локального запуска и тестов.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            # in-memory база живёт, пока живёт единственное соединение
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=echo, **kwargs)
    return create_async_engine(
        url,
        echo=echo,
        future=True,
        pool_pre_ping=True,      # проверка соединения перед использованием
    )


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: движок баттлов читает атрибуты после commit
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine) -> None:
    """Создаёт таблицы пользователей, подписок, баттлов, аргументов и лайков."""
    from models.base import Base, register_models

    register_models()
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)

AsyncSessionLocal = make_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Асинхронный генератор сессии.
    Используется как Depends(get_db) в роутерах.
    """
    async with AsyncSessionLocal() as session:
        yield session
