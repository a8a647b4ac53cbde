from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from storefront.config import settings
from storefront.infrastructure.db_schema import metadata

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"command_timeout": settings.REQUEST_TIMEOUT_SECONDS}
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
