import logging
import time

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import AsyncAdaptedQueuePool

from app.config import Settings, describe_database_target
from app.core.errors import DatabaseInitError

logger = logging.getLogger("pops.database")

Base = declarative_base()


def _normalize_async_database_url(database_url: str) -> str:
    """Ensure PostgreSQL URLs always use the asyncpg dialect."""
    if not database_url:
        return ""
    if database_url.startswith("postgresql+asyncpg://"):
        return database_url
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


def _install_query_logging(engine):
    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start_time = conn.info["query_start_time"].pop(-1)
        total = time.time() - start_time
        logger.debug(
            f"DB_QUERY SUCCESS | duration_ms={total * 1000:.2f} | query={statement[:200]}..."
        )

    @event.listens_for(engine.sync_engine, "handle_error")
    def handle_error(context):
        # Connection-level failures have no connection to time against
        conn = context.connection
        if conn is not None and conn.info.get("query_start_time"):
            start_time = conn.info["query_start_time"].pop(-1)
            total = time.time() - start_time
            logger.error(
                f"DB_QUERY ERROR | duration_ms={total * 1000:.2f} | error={context.original_exception}"
            )
        else:
            logger.error(f"DB_CONNECTION ERROR | error={context.original_exception}")


def _install_sqlite_pragmas(engine):
    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Database:
    """Shared, connection-pooled handle to the storage engine.

    One instance is created per application and handed to every component
    that needs storage. Each checkout of a session owns one pooled connection
    until the session is closed.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 5,
        pool_timeout: float = 10.0,
        pool_recycle: int = 300,
        busy_timeout: float = 5.0,
        echo: bool = False,
    ):
        self.url = _normalize_async_database_url(database_url)
        if not self.url:
            raise DatabaseInitError("No database URL configured.")

        if self.url.startswith("sqlite"):
            connect_args = {"timeout": busy_timeout}
        elif self.url.startswith("postgresql+asyncpg"):
            connect_args = {"command_timeout": 5.0}
        else:
            connect_args = {}

        self.engine = create_async_engine(
            self.url,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
            echo=echo,
            connect_args=connect_args,
        )
        _install_query_logging(self.engine)
        if self.engine.dialect.name == "sqlite":
            _install_sqlite_pragmas(self.engine)

        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        logger.info(
            f"Database pool configured (target: {describe_database_target(self.url)}, "
            f"size={pool_size}, overflow={max_overflow})"
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            busy_timeout=settings.db_busy_timeout,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def init_schema(self) -> None:
        """Create the tenant and pop tables if they do not exist.

        Raises:
            DatabaseInitError: the tables could not be created. The caller
                decides whether the process should keep running.
        """
        # Registers the mapped tables on Base.metadata
        from app.models import pop  # noqa: F401

        logger.info("Initializing pops database schema.")
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Could not create tables: {e}")
            raise DatabaseInitError(f"Could not create tables: {e}") from e

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
