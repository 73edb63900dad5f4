"""
Async PostgreSQL connection management via SQLAlchemy + asyncpg.

``Database`` owns the connection-pooled engine and its session factory.
One instance is created at application startup and handed to whatever
needs it (request dependencies, the health checker); there is no
module-level engine.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


def to_async_url(url: str) -> str:
    """Rewrite a plain ``postgres://`` URL to use the asyncpg driver.

    Hosting providers hand out driver-less URLs; SQLAlchemy needs the
    ``+asyncpg`` suffix to pick the async dialect.
    """
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


class Database:
    """Handle on the async engine and session factory.

    Usage::

        db = Database(settings.database_url)
        db.init()
        async with db.session() as session:
            ...
        await db.close()
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
    ) -> None:
        self.url = to_async_url(url)
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self) -> AsyncEngine:
        """Create the async engine and session factory. Idempotent."""
        if self.engine is not None:
            return self.engine

        self.engine = create_async_engine(
            self.url,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_timeout=30,
            pool_recycle=1800,
            pool_pre_ping=True,
            echo=False,
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(
            "PostgreSQL async engine initialized (pool_size=%d, max_overflow=%d)",
            self.pool_size,
            self.max_overflow,
        )
        return self.engine

    async def close(self) -> None:
        """Dispose of the engine connection pool."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("PostgreSQL engine disposed")
        self.engine = None
        self.session_factory = None

    def session(self) -> AsyncSession:
        """Return a new session; use it as an async context manager."""
        if self.session_factory is None:
            # Lazy init for scripts / tests that skip lifespan
            self.init()
        assert self.session_factory is not None
        return self.session_factory()
