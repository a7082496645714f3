"""
Database connection, session management and connection supervision.
Uses asyncpg with SQLAlchemy async.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from society.config import settings

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Get database URL without sslmode (asyncpg doesn't accept it as query param)."""
    url = settings.database_url
    if not url:
        return ""
    if "?sslmode=" in url:
        url = url.split("?sslmode=")[0]
    elif "&sslmode=" in url:
        url = url.replace("&sslmode=require", "").replace("&sslmode=disable", "")
    return url


def create_engine_if_configured() -> Optional[AsyncEngine]:
    """Create async engine only if DATABASE_URL is configured."""
    db_url = get_database_url()
    if not db_url:
        logger.warning("DATABASE_URL not configured. Database features disabled.")
        return None

    connect_args = {}
    if "sslmode=require" in settings.database_url:
        connect_args["ssl"] = True

    return create_async_engine(
        db_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        connect_args=connect_args,
    )


engine = create_engine_if_configured()

async_session_maker = (
    async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    if engine
    else None
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    if not async_session_maker:
        raise RuntimeError("Database not configured. Set DATABASE_URL environment variable.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database session (for use outside FastAPI)."""
    if not async_session_maker:
        raise RuntimeError("Database not configured. Set DATABASE_URL environment variable.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables. Production schemas are managed by Alembic."""
    if not engine:
        logger.info("Skipping database initialization - DATABASE_URL not configured")
        return

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    if engine:
        await engine.dispose()


class DatabaseUnavailableError(RuntimeError):
    """Raised when the database cannot be reached after every connection attempt."""


class DatabaseSupervisor:
    """
    Tracks database reachability.

    ``connect()`` is called once at startup and is fatal when it runs out of
    attempts. ``start()`` then keeps a background task pinging the database;
    when a ping fails the supervisor flips ``healthy`` off and reconnects with
    the same bounded backoff until the database answers again.
    """

    def __init__(
        self,
        engine: Optional[AsyncEngine],
        attempts: int = 5,
        backoff: float = 5.0,
        backoff_max: float = 60.0,
        interval: float = 30.0,
    ):
        self.engine = engine
        self.attempts = attempts
        self.backoff = backoff
        self.backoff_max = backoff_max
        self.interval = interval
        self.healthy = False
        self._task: Optional[asyncio.Task] = None

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (1-based)."""
        return min(self.backoff * (2 ** (attempt - 1)), self.backoff_max)

    async def ping(self) -> bool:
        if self.engine is None:
            self.healthy = False
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            if self.healthy:
                logger.error(f"Database ping failed: {e}")
            self.healthy = False
            return False
        self.healthy = True
        return True

    async def connect(self) -> None:
        """Ping until the database answers or attempts are exhausted."""
        if self.engine is None:
            raise DatabaseUnavailableError("DATABASE_URL is not configured")

        for attempt in range(1, self.attempts + 1):
            if await self.ping():
                logger.info("Database connected")
                return
            remaining = self.attempts - attempt
            logger.warning(f"Database connection failed, retries left: {remaining}")
            if remaining:
                await asyncio.sleep(self.delay_for(attempt))

        raise DatabaseUnavailableError(
            f"Database unreachable after {self.attempts} attempts"
        )

    async def watch(self) -> None:
        """Periodic health check; reconnects after a failed ping."""
        while True:
            await asyncio.sleep(self.interval)
            if await self.ping():
                continue
            logger.warning("Database connection lost, attempting to reconnect...")
            try:
                await self.connect()
            except DatabaseUnavailableError as e:
                # writes stay blocked until a later ping succeeds
                logger.error(f"Reconnection failed: {e}")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.watch(), name="db-supervisor")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None


supervisor = DatabaseSupervisor(
    engine,
    attempts=settings.db_connect_attempts,
    backoff=settings.db_retry_backoff_seconds,
    backoff_max=settings.db_retry_backoff_max_seconds,
    interval=settings.db_health_check_interval_seconds,
)
