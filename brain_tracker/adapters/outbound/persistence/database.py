# brain_tracker/adapters/outbound/persistence/database.py

import asyncio
import logging
from typing import AsyncGenerator, Awaitable, Callable, Optional
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from brain_tracker.adapters.configuration.config import settings
from brain_tracker.adapters.outbound.persistence.models import Base

# Configure logger
logger = logging.getLogger(__name__)

database_url = str(settings.DATABASE_URL).replace('postgresql+psycopg2', 'postgresql+asyncpg')
logger.info(f"Database configured at: {database_url.split('@')[-1]}")

try:
    # Create async engine; no connection is opened until first use
    engine = create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_size=10,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True
    )

    # Create async session factory
    AsyncSessionLocal = async_sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )

except SQLAlchemyError as e:
    logger.error(f"Error configuring database engine: {str(e)}")
    raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Provides an async context for database operations,
    committing on success and rolling back on error.

    Example:
        ```python
        async with get_db_context() as db:
            deleted = await refresh_token_repository.cleanup_expired(db, now)
        ```
    """
    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[Optional[AsyncSession], None]:
    """
    Dependency injection for use with FastAPI.

    Yields ``None`` when the in-process store is configured.
    """
    if settings.USE_MEMORY_STORE:
        yield None
        return
    async with get_db_context() as session:
        yield session


async def create_schema() -> None:
    """Create the tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_database() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


class DatabaseConnectionManager:
    """
    Establishes the database connection at startup with exponential backoff.

    The retry state lives on the instance: the delay before retry ``n`` is
    ``base_delay * multiplier ** (n - 1)`` and after ``max_retries`` failed
    retries the last error is raised.
    """

    def __init__(
            self,
            connect: Callable[[], Awaitable[None]] = create_schema,
            max_retries: int = 5,
            base_delay: float = 1.0,
            multiplier: float = 2.0,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._connect = connect
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self._sleep = sleep
        self.retry_count = 0
        self.is_connected = False

    def next_delay(self) -> float:
        return self.base_delay * (self.multiplier ** (self.retry_count - 1))

    async def connect(self) -> None:
        while True:
            try:
                logger.info("Attempting database connection...")
                await self._connect()
            except (SQLAlchemyError, OSError) as e:
                self.is_connected = False
                if self.retry_count >= self.max_retries:
                    logger.error(f"Database connection failed after {self.retry_count} retries: {e}")
                    raise
                self.retry_count += 1
                delay = self.next_delay()
                logger.warning(
                    f"Database connection error: {e}. "
                    f"Retrying in {delay:.1f}s ({self.retry_count}/{self.max_retries})"
                )
                await self._sleep(delay)
            else:
                self.is_connected = True
                self.retry_count = 0
                logger.info("Database connection established")
                return

    async def check(self) -> bool:
        """Health check; updates ``is_connected``."""
        try:
            await ping_database()
            self.is_connected = True
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Database health check failed: {e}")
            self.is_connected = False
        return self.is_connected


connection_manager = DatabaseConnectionManager(
    max_retries=settings.DB_CONNECT_MAX_RETRIES,
    base_delay=settings.DB_CONNECT_BASE_DELAY_SECONDS,
    multiplier=settings.DB_CONNECT_BACKOFF_MULTIPLIER,
)
