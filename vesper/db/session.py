"""Database engine and session configuration"""

import logging
from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vesper.config import Settings

logger = logging.getLogger(__name__)

# Execution option read by the SQLite "begin" hook: "IMMEDIATE" takes the
# write lock when the transaction starts instead of at the first write.
SQLITE_BEGIN_OPTION = "sqlite_begin"


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Create the async SQLAlchemy engine for the configured database.

    The engine is the single storage handle of the process: it is created
    once at start-up, handed to the consumers that need it and disposed on
    shutdown.
    """
    url = settings.database_url

    if settings.is_sqlite:
        engine_kwargs: Dict[str, Any] = {
            "connect_args": {"timeout": settings.sqlite_busy_timeout},
        }
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            # One shared connection, otherwise every checkout sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                pool_size=settings.pool_size,
                max_overflow=settings.max_overflow,
                pool_timeout=settings.pool_timeout,
            )
    else:
        engine_kwargs = {
            "pool_pre_ping": True,  # Verify connections before using them
            "pool_size": settings.pool_size,
            "max_overflow": settings.max_overflow,
            "pool_timeout": settings.pool_timeout,
            "pool_recycle": settings.pool_recycle,
        }

    engine = create_async_engine(url, echo=settings.echo, **engine_kwargs)

    if settings.is_sqlite:
        _install_sqlite_transaction_hooks(engine)
    _install_pool_listeners(engine)

    logger.info(f"Database engine created: {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory bound to the engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def _install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
    """
    Take over BEGIN emission from the SQLite driver.

    The driver otherwise defers BEGIN until the first write, which leaves a
    read-then-write sequence unprotected. With these hooks every transaction
    starts with an explicit BEGIN, and callers can ask for BEGIN IMMEDIATE
    through the `sqlite_begin` execution option.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def on_sqlite_connect(dbapi_conn, connection_record):
        # disable the driver's own BEGIN handling entirely
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_sqlite_begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION)
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")


def get_pool_stats(engine: AsyncEngine) -> dict:
    """
    Get current connection pool statistics.

    Returns:
        Dictionary with pool statistics:
        - size: Total pool size
        - checked_in: Connections currently checked in (available)
        - checked_out: Connections currently checked out (in use)
        - overflow: Overflow connections
        - max_overflow: Configured overflow limit
    """
    try:
        # For async engines, access the underlying sync pool
        sync_pool = engine.sync_engine.pool

        size_func = getattr(sync_pool, "size", None)
        checkedin_func = getattr(sync_pool, "checkedin", None)
        checkedout_func = getattr(sync_pool, "checkedout", None)
        overflow_func = getattr(sync_pool, "overflow", None)

        # StaticPool and friends expose none of these
        size_val = size_func() if callable(size_func) else 1
        checked_in_val = checkedin_func() if callable(checkedin_func) else 0
        checked_out_val = checkedout_func() if callable(checkedout_func) else 0
        overflow_val = overflow_func() if callable(overflow_func) else 0
        max_overflow_val = getattr(sync_pool, "_max_overflow", 0)

        return {
            "size": int(size_val),
            "checked_in": int(checked_in_val),
            "checked_out": int(checked_out_val),
            # Overflow is negative while the pool has not filled up yet
            "overflow": max(0, int(overflow_val)),
            "max_overflow": max(0, int(max_overflow_val)),
        }
    except Exception as e:
        logger.warning(f"Error getting pool stats: {e}")
        return {
            "size": 0,
            "checked_in": 0,
            "checked_out": 0,
            "overflow": 0,
            "max_overflow": 0,
        }


def log_pool_stats(engine: AsyncEngine, context: str = "") -> None:
    """
    Log current connection pool statistics.

    Args:
        engine: Engine whose pool is inspected
        context: Optional context string to include in log message
    """
    stats = get_pool_stats(engine)
    total_capacity = stats["size"] + stats["max_overflow"]
    utilization = (stats["checked_out"] / total_capacity * 100) if total_capacity > 0 else 0

    context_str = f" [{context}]" if context else ""
    logger.info(
        f"Connection pool stats{context_str}: "
        f"available={stats['checked_in']}, in_use={stats['checked_out']}, "
        f"overflow={stats['overflow']}, utilization={utilization:.1f}%"
    )

    # Warn if pool is getting full
    if utilization > 80:
        logger.warning(
            f"Connection pool utilization is high ({utilization:.1f}%)! "
            f"Consider increasing pool size or investigating slow queries."
        )


def _install_pool_listeners(engine: AsyncEngine) -> None:
    """Log connection pool activity (listeners go on the sync engine)"""

    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("New database connection created")

    @event.listens_for(engine.sync_engine, "invalidate")
    def on_invalidate(dbapi_conn, connection_record, exception):
        logger.warning(
            f"Database connection invalidated: {exception}",
            exc_info=exception
        )
