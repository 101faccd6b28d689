"""
Engine and session plumbing shared by the SQLAlchemy adapters.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from adapters.sql_schema import Base
from shared_utils.constants import LogScope
from shared_utils.error_handler import StorageError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


def create_db_engine(database_uri: str) -> Engine:
    """Create an engine for ``database_uri``.

    SQLite gets foreign-key enforcement (needed for cascades) and, for
    ``:memory:`` URLs, a single shared connection.
    """
    kwargs: dict = {}
    is_sqlite = database_uri.startswith("sqlite")
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_uri or database_uri in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_uri, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.info("db_engine_created", dialect=engine.dialect.name)
    return engine


def init_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("db_schema_ready", tables=len(Base.metadata.tables))


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


class SqlStoreBase:
    """Common transaction handling for the SQL adapters."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Yield a session inside one transaction.

        Commits on success, rolls back on any error and translates
        SQLAlchemy failures into StorageError.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("db_operation_failed", operation=operation, error=str(exc))
            raise StorageError(
                f"Database operation failed: {operation}",
                context={"operation": operation},
            ) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
