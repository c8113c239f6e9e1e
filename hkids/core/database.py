"""
Database wiring for the reading core.

PostgreSQL through asyncpg in deployments; ``SQLALCHEMY_DATABASE_URI`` can
point at another async URL (the test suite uses aiosqlite). The partial unique
index on open reading sessions is declared for both dialects.
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from .config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

# Services keep using policies and sessions after commit to build responses
AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
    class_=AsyncSession
)

Base = declarative_base()


async def get_db():
    """One session per request; uncommitted work is rolled back on close."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables():
    """Create children, policies, catalog and reading session tables at startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
