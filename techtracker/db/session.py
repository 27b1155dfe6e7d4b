"""SQLAlchemy storage handle.

``Database`` owns the engine and the session factory. It is built once by the
application factory, stored on ``app.state.database`` and handed to request
handlers through ``get_db``; nothing in the package reaches for a module-level
engine.
"""

from __future__ import annotations

import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from ..core.errors import (
    STORAGE_NOT_CONFIGURED,
    ConflictError,
    StorageUnavailableError,
    storage_error_message,
)

logger = logging.getLogger("techtracker.db")

STALE_ROW = "The record was changed by someone else in the meantime. Reload it and try again."

# ``Base`` is the parent class for every model under techtracker/models.
Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith(":memory:") or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"))


class Database:
    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = (url or "").strip()
        self._engine: Engine | None = None
        self._sessions: sessionmaker | None = None
        if not self.url:
            logger.error("db.not_configured")
            return
        kwargs: dict = {"echo": echo}
        if self.url.startswith("sqlite"):
            # FastAPI runs sync handlers in worker threads.
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(self.url):
                # One shared connection, otherwise every session gets its own empty database.
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
        self._engine = create_engine(self.url, **kwargs)
        self._sessions = sessionmaker(bind=self._engine, autocommit=False, autoflush=False, expire_on_commit=False)

    @property
    def configured(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageUnavailableError(STORAGE_NOT_CONFIGURED)
        return self._engine

    def init(self, *, bootstrap_admin: dict[str, str] | None = None) -> None:
        """Create tables, apply additive migrations and seed the first admin."""

        from .migrate import run_migrations
        from ..crud.users import ensure_bootstrap_admin

        # Importing the models registers them with ``Base.metadata``.
        from ..models import equipment as _equipment  # noqa: F401
        from ..models import history as _history  # noqa: F401
        from ..models import user as _user  # noqa: F401

        if not self.configured:
            return
        Base.metadata.create_all(bind=self.engine)
        run_migrations(self.engine)
        if bootstrap_admin:
            with self.session() as db:
                ensure_bootstrap_admin(db, **bootstrap_admin)
        logger.info("db.ready", extra={"extra_data": {"dialect": self.engine.dialect.name}})

    def ping(self) -> bool:
        if not self.configured:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("db.ping_failed")
            return False
        return True

    def session(self) -> Session:
        if self._sessions is None:
            raise StorageUnavailableError(STORAGE_NOT_CONFIGURED)
        return self._sessions()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("db.disposed")


def commit(db: Session, *, conflict_message: str, stale_message: str = STALE_ROW) -> None:
    """Commit the unit of work or roll it back and raise a domain error.

    A unique-constraint violation becomes ``ConflictError(conflict_message)``
    and a lost version check becomes ``ConflictError(stale_message)``.
    Connection and schema failures become ``StorageUnavailableError``.
    """

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(conflict_message) from exc
    except StaleDataError as exc:
        db.rollback()
        logger.warning("db.stale_write", extra={"extra_data": {"error": str(exc)}})
        raise ConflictError(stale_message, details={"reason": "stale_row"}) from exc
    except (OperationalError, ProgrammingError) as exc:
        db.rollback()
        logger.error("db.commit_failed", exc_info=exc)
        raise StorageUnavailableError(storage_error_message(exc)) from exc


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
