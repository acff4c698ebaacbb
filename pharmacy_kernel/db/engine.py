"""
Module: pharmacy_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  This is the single point of database
    connection configuration for the engine.
Architecture position: Kernel > DB.  May import from db/base.py and
    db/immutability.py.  MUST NOT import from stores/, services/ or outer
    layers (except create_tables, which imports models).

Invariants enforced:
    - Stock mutation correctness does NOT depend on the isolation level:
      every batch write is a conditional UPDATE on the version column
      (see stores/sql.py).  READ COMMITTED on PostgreSQL is sufficient.
    - SQLite URLs are supported for embedding and tests; an in-memory SQLite
      database uses a StaticPool so every session sees the same data.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory called
      before init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pharmacy_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Postconditions: Module-level _engine and _SessionFactory are initialized.
        All subsequent get_engine/get_session calls use this engine.

    Args:
        database_url: SQLAlchemy URL (postgresql://..., sqlite:///path.db,
            or sqlite:// for an in-memory database).
        echo: If True, log all SQL statements.
        pool_size: Connections kept in the pool (server databases only).
        max_overflow: Max connections beyond pool_size.
        pool_pre_ping: Test connections before use.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        _engine = create_engine(database_url, echo=echo, **kwargs)
        _enable_sqlite_savepoints(_engine)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            isolation_level="READ COMMITTED",
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy own BEGIN on SQLite so SAVEPOINT works.

    pysqlite defers BEGIN until the first DML statement, which breaks
    begin_nested().  Disabling its transaction handling and emitting BEGIN
    ourselves restores correct nesting.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory for creating sessions.

    Useful for multi-threaded hosts where each request needs its own session.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed and the exception
        is re-raised to the caller.

    Usage:
        with session_scope() as session:
            builder = SaleInvoiceBuilder(SqlStockStore(session), ...)
            builder.build(lines, discount_percent=0, paid_amount=0)
    """
    session = get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """
    Create all tables defined in the models.

    Preconditions: Engine must be initialized via init_engine_from_url().
    Postconditions: All tables exist and append-only listeners are active.
    """
    from pharmacy_kernel.db.base import Base
    from pharmacy_kernel.db.immutability import register_immutability_listeners
    import pharmacy_kernel.models  # noqa: F401  (registers tables)

    Base.metadata.create_all(get_engine())
    register_immutability_listeners()


def drop_tables() -> None:
    """Drop all tables. Use with caution - primarily for testing."""
    from pharmacy_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Reset the engine and session factory. Useful for test cleanup."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)
