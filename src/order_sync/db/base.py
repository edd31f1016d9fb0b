"""Database configuration and setup."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables on an existing engine."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(database_url: str) -> None:
    """Initialize database and create tables."""
    engine = create_async_engine(database_url, echo=False)
    await create_tables(engine)
    await engine.dispose()


def get_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create async engine."""
    options = {"echo": False, "future": True, "pool_pre_ping": True}
    options.update(kwargs)
    return create_async_engine(database_url, **options)


def get_session_factory(engine: AsyncEngine):
    """Create async session factory."""
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        future=True,
    )
