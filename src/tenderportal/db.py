"""SQLAlchemy engine, sessions and schema helpers for the portal database."""

import time
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, QueuePool

from .config import settings
from .logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

_engine = None
_SessionLocal = None


def _redact(url) -> str:
    return str(url).split("@")[-1]


def _enable_sqlite_foreign_keys(engine) -> None:
    """SQLite only enforces ON DELETE CASCADE when the pragma is on."""

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _log_slow_statements(engine) -> None:
    @event.listens_for(engine, "before_cursor_execute")
    def start_timer(conn, cursor, statement, parameters, context, executemany):
        context._tenderportal_started = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def stop_timer(conn, cursor, statement, parameters, context, executemany):
        elapsed = time.perf_counter() - context._tenderportal_started
        logger.debug("SQL statement", duration_ms=round(elapsed * 1000, 2), statement=statement[:200])


def build_engine(database_url: str, **overrides):
    """Create an engine for ``database_url``.

    Postgres gets a pre-pinged, recycled connection pool (NullPool under the
    test environment). SQLite gets cross-thread access and foreign keys.
    Keyword ``overrides`` win over both.
    """
    url = make_url(database_url)
    is_sqlite = url.get_backend_name() == "sqlite"

    if is_sqlite:
        options = {"connect_args": {"check_same_thread": False}}
    elif settings.environment == "test":
        options = {"poolclass": NullPool}
    else:
        options = {
            "pool_size": settings.database.pool_size,
            "max_overflow": settings.database.max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }

    options["echo"] = settings.database.echo
    options.update(overrides)

    engine = create_engine(database_url, **options)
    if is_sqlite:
        _enable_sqlite_foreign_keys(engine)
    return engine


def get_engine():
    """Return the process-wide engine, building it on first use."""
    global _engine

    if _engine is None:
        _engine = build_engine(settings.get_database_url())
        if settings.debug:
            _log_slow_statements(_engine)
        logger.info("Database engine ready", database=_redact(_engine.url))

    return _engine


def get_session_factory():
    global _SessionLocal

    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _SessionLocal


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Unit of work for scripts and the CLI.

    Commits when the block exits cleanly, rolls back and re-raises otherwise.
    """
    session = get_session_factory()()

    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error("Unit of work rolled back", error=str(e), exc_info=True)
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request.

    Committed when the handler returns, rolled back if it raises.
    """
    session = get_session_factory()()

    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.warning("Request session rolled back", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        session.close()


def init_database():
    """Create the users, tenders and tender_applications tables if missing."""
    from . import models  # noqa: F401

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema created", tables=sorted(Base.metadata.tables))

    with get_db_context() as session:
        session.execute(text("SELECT 1"))


def drop_database():
    """Drop every portal table. Refused in production."""
    if settings.is_production:
        raise RuntimeError("Refusing to drop tables in production")

    from . import models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
    logger.warning("Database schema dropped")


def check_database_health() -> bool:
    try:
        with get_db_context() as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Database unreachable", error=str(e))
        return False


def get_database_info() -> dict:
    """Backend name, redacted URL and, for pooled engines, pool usage."""
    engine = get_engine()

    info = {
        "backend": engine.url.get_backend_name(),
        "url": _redact(engine.url),
    }
    if isinstance(engine.pool, QueuePool):
        info["pool_size"] = engine.pool.size()
        info["checked_out"] = engine.pool.checkedout()
    return info
