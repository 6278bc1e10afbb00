from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gastos.config import settings
from gastos.models.base import Base

# Statement descriptions end up in bound parameters; only echo SQL in development.
async_engine = create_async_engine(
    settings.database_url,
    echo=(settings.db_echo if settings.app_env.lower() == "development" else False),
    future=True,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables() -> None:
    """Create missing tables for every registered model."""
    import gastos.models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
