"""
Engine factory + session helper.

- SQLite runs in WAL mode so readers never block readers (or the single writer).
- Every statement gets a deadline of `database.query_timeout_seconds`: SQLite enforces it with
  a progress handler, PostgreSQL with `statement_timeout`. A statement past its deadline fails
  with `OperationalError` instead of queueing; the repository maps that to
  `TransientStorageError`.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from halalmap.config.settings import DatabaseSettings
from halalmap.core.env import resolve_project_path
from halalmap.storage.models import Base

logger = logging.getLogger(__name__)

# SQLite VM instructions between two deadline checks.
_PROGRESS_STEPS = 1000


def _install_sqlite_hooks(engine: Engine, timeout_seconds: float) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

        info = connection_record.info

        def _past_deadline() -> int:
            deadline = info.get("deadline")
            return 1 if deadline is not None and time.monotonic() > deadline else 0

        dbapi_conn.set_progress_handler(_past_deadline, _PROGRESS_STEPS)

    @event.listens_for(engine, "before_cursor_execute")
    def _arm_deadline(conn, cursor, statement, parameters, context, executemany):
        conn.info["deadline"] = time.monotonic() + timeout_seconds

    # COMMIT / ROLLBACK / pool reset are never interrupted.
    @event.listens_for(engine, "commit")
    @event.listens_for(engine, "rollback")
    def _disarm_on_tx_end(conn):
        conn.info.pop("deadline", None)

    @event.listens_for(engine.pool, "reset")
    def _disarm_on_reset(dbapi_conn, connection_record, reset_state):
        connection_record.info.pop("deadline", None)


def make_engine(settings: DatabaseSettings) -> Engine:
    url = make_url(settings.url)
    timeout = float(settings.query_timeout_seconds)

    if url.get_backend_name() == "sqlite":
        kwargs: dict = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            db_path = resolve_project_path(url.database)
            db_path.parent.mkdir(parents=True, exist_ok=True)
            url = url.set(database=str(db_path))
        engine = create_engine(url, **kwargs)
        _install_sqlite_hooks(engine, timeout)
        return engine

    connect_args = {}
    if url.get_backend_name() == "postgresql":
        connect_args["options"] = f"-c statement_timeout={int(timeout * 1000)}"
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


class Database:
    """Owns one engine and its session factory."""

    def __init__(self, settings: DatabaseSettings):
        self._settings = settings
        self._engine = make_engine(settings)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_all(self) -> None:
        Base.metadata.create_all(self._engine)
        logger.info("Database schema ready (%s)", self._engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Context manager yielding a Session; commits on success, rolls back on error."""
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
