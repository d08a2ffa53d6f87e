from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.pool import QueuePool
from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import Settings
from .errors import StoreUnavailableError


logger = logging.getLogger(__name__)

# Execution option asking for a write-locked transaction.
EXCLUSIVE = "ledger_exclusive"

_TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


def _install_sqlite_locking(engine: Engine) -> None:
    # pysqlite issues its own deferred BEGIN lazily; take that over so an
    # exclusive unit-of-work grabs the write lock before its first read.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        if conn.get_execution_options().get(EXCLUSIVE):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_engine_for_url(
    database_url: str,
    *,
    lock_timeout: float = 5.0,
    pool_size: Optional[int] = None,
    pool_recycle: Optional[int] = None,
) -> Engine:
    url = make_url(database_url)
    connect_args: dict[str, Any] = {}
    engine_kwargs: dict[str, Any] = {}

    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": lock_timeout}
        if url.database in (None, "", ":memory:"):
            # One connection holds the whole database; each unit-of-work
            # checks it out exclusively and others wait for it.
            engine_kwargs.update(
                poolclass=QueuePool,
                pool_size=1,
                max_overflow=0,
                pool_timeout=lock_timeout,
            )
    else:
        if url.get_backend_name() == "postgresql":
            connect_args = {"options": f"-c lock_timeout={int(lock_timeout * 1000)}"}
        if pool_size is not None:
            engine_kwargs["pool_size"] = pool_size
        if pool_recycle is not None:
            engine_kwargs["pool_recycle"] = pool_recycle
        engine_kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, echo=False, connect_args=connect_args, **engine_kwargs)
    if url.get_backend_name() == "sqlite":
        _install_sqlite_locking(engine)
    return engine


class Database:
    """Store handle shared by the repositories and the ledger service.

    Lifecycle is open (construction) -> used -> :meth:`close`. All writes go
    through :meth:`unit_of_work`, which commits on a clean exit and rolls back
    on any exception, so a caller can never observe a half-applied operation.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str, *, lock_timeout: float = 5.0) -> "Database":
        return cls(create_engine_for_url(database_url, lock_timeout=lock_timeout))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            create_engine_for_url(
                settings.database_url,
                lock_timeout=settings.lock_timeout_seconds,
                pool_size=settings.pool_size,
                pool_recycle=settings.pool_recycle_seconds,
            )
        )

    def init_schema(self) -> None:
        with self._translate_errors():
            SQLModel.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def unit_of_work(self, *, exclusive: bool = False) -> Iterator[Session]:
        """Open an atomic unit-of-work.

        With ``exclusive=True`` the transaction is started in write-locked
        mode on SQLite (``BEGIN IMMEDIATE``); on server databases callers
        take row locks explicitly with ``SELECT ... FOR UPDATE``.
        """
        with self._translate_errors():
            with Session(self.engine, expire_on_commit=False) as session:
                with session.begin():
                    if exclusive:
                        session.connection(execution_options={EXCLUSIVE: True})
                    yield session

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read-only session; whatever it started is rolled back on exit."""
        with self._translate_errors():
            with Session(self.engine, expire_on_commit=False) as session:
                yield session

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except _TRANSIENT_ERRORS as exc:
            logger.warning("store.unavailable", extra={"error": str(exc)})
            raise StoreUnavailableError(f"Store unavailable: {exc}") from exc
