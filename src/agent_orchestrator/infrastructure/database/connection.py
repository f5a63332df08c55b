# src/agent_orchestrator/infrastructure/database/connection.py
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine, AsyncEngine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from agent_orchestrator.config.settings import Settings
from agent_orchestrator.domain.exceptions import DatabaseConnectionError, DatabaseError
from agent_orchestrator.infrastructure.observability.logging import get_logger

# Registers every table on SQLModel.metadata before create_tables() runs
from agent_orchestrator.infrastructure.database import models  # noqa: F401

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages async database connections with configurable pool settings and health monitoring.

    Features:
    - Configurable connection pooling (size, overflow, timeout, recycle)
    - NullPool for SQLite URLs (local runs and tests)
    - Connection health checks via pool_pre_ping
    - Pool statistics and monitoring
    - Automatic session management with commit/rollback; driver errors
      surface as DatabaseError

    Every store holds a reference to one DatabaseManager and opens a fresh
    session per operation, so each operation commits independently.

    Usage:
        db = DatabaseManager()
        await db.connect(url="postgresql+asyncpg://...")
        async with db.session() as session:
            # use session
        await db.disconnect()
    """

    def __init__(self):
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._pool_size: int = 5
        self._max_overflow: int = 10
        self._pool_timeout: int = 30
        self._pool_recycle: int = 3600

    async def connect(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        echo_sql: bool = False,
    ) -> None:
        """
        Connect to the database with configurable pool settings.

        Args:
            url: Database connection URL
            pool_size: Number of connections to maintain in the pool (default: 5)
            max_overflow: Max connections beyond pool_size (default: 10)
            pool_timeout: Timeout in seconds for getting a connection (default: 30)
            pool_recycle: Recycle connections after N seconds (default: 3600 = 1 hour)
            pool_pre_ping: Enable connection health checks (default: True)
            echo_sql: Log all SQL statements (default: False)

        Raises:
            RuntimeError: If already connected
        """
        if self._engine is not None:
            raise RuntimeError("Database already connected")

        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._pool_timeout = pool_timeout
        self._pool_recycle = pool_recycle

        if url.startswith("sqlite"):
            # SQLite connections are cheap and not shareable across tasks
            self._engine = create_async_engine(url, poolclass=NullPool, echo=echo_sql)
        else:
            self._engine = create_async_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=pool_pre_ping,
                echo=echo_sql,
            )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info(
            "database_connected",
            dialect=self._engine.dialect.name,
            pool_size=pool_size,
            max_overflow=max_overflow,
        )

    async def connect_from_settings(self, settings: Settings) -> None:
        """
        Connect using the database section of Settings.

        Raises:
            DatabaseConnectionError: If no database_url is configured
        """
        if settings.database_url is None:
            raise DatabaseConnectionError("DATABASE_URL is not configured")
        await self.connect(
            url=settings.database_url.get_secret_value(),
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            echo_sql=settings.db_echo_sql,
        )

    async def create_tables(self) -> None:
        """Create all tables that do not exist yet. Production schemas come from Alembic."""
        if not self._engine:
            raise RuntimeError("Database not connected. Call connect() first.")
        async with self._engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def disconnect(self) -> None:
        """
        Gracefully disconnect from the database and cleanup all connections.

        Safe to call multiple times.
        """
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("database_disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session with automatic commit/rollback.

        Yields:
            AsyncSession: Database session

        Raises:
            RuntimeError: If database not connected
            DatabaseError: If the driver fails; the session is rolled back first

        Usage:
            async with db.session() as session:
                result = await session.execute(select(AgentSession))
                # session automatically committed on success
        """
        if not self._session_factory:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("database_operation_failed", error=str(e), error_type=type(e).__name__)
                raise DatabaseError(details={"error_type": type(e).__name__}) from e
            except Exception:
                await session.rollback()
                raise

    def get_pool_stats(self) -> Dict[str, Any]:
        """
        Get current connection pool statistics for monitoring.

        Raises:
            RuntimeError: If database not connected
        """
        if not self._engine:
            raise RuntimeError("Database not connected")

        pool = self._engine.pool
        return {
            "pool_size": self._pool_size,
            "max_overflow": self._max_overflow,
            "pool_timeout": self._pool_timeout,
            "pool_recycle": self._pool_recycle,
            "checked_in": pool.checkedin() if hasattr(pool, 'checkedin') else None,
            "checked_out": pool.checkedout() if hasattr(pool, 'checkedout') else None,
            "overflow": pool.overflow() if hasattr(pool, 'overflow') else None,
            "total": pool.size() if hasattr(pool, 'size') else None,
        }

    async def health_check(self) -> bool:
        """
        Perform a health check by executing a simple query.

        Returns:
            True if database is healthy, False otherwise
        """
        if not self._engine:
            return False

        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except DatabaseError as e:
            logger.error("database_health_check_failed", error=str(e))
            return False

    @property
    def is_connected(self) -> bool:
        return self._engine is not None
