"""Database connection and session management.

Wraps a SQLAlchemy engine and session factory. Every unit of work runs in
``get_session()``, which commits on success and rolls back on any error, so
callers get one transaction per ``with`` block.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Optional

import backoff
from sqlalchemy import create_engine, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import NotExistsError
from .models import Base

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class DatabaseManager:
    """Owns the engine and hands out transactional sessions."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.database_url = database_url

        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # In-memory databases live on one shared connection
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
            )

        self.engine = create_engine(database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info(f"DatabaseManager initialized ({self.engine.dialect.name})")

    def init_db(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created")

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Yield a session wrapped in a single transaction."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def session_scope(self, session: Optional[Session] = None) -> Iterator[Session]:
        """Join the caller's transaction if one is given, otherwise open a new one."""
        if session is not None:
            yield session
            return
        with self.get_session() as new_session:
            yield new_session

    def dispose(self) -> None:
        self.engine.dispose()


def upsert(
    session: Session,
    model,
    values: Dict[str, Any],
    conflict_columns: Iterable[str],
):
    """INSERT ... ON CONFLICT DO UPDATE returning the stored ORM row.

    Every column in ``values`` that is not a conflict column is overwritten.
    """
    dialect = session.get_bind().dialect.name
    insert_fn = _DIALECT_INSERTS.get(dialect)
    if insert_fn is None:
        raise NotImplementedError(f"Upsert is not supported on {dialect}")

    conflict_columns = list(conflict_columns)
    stmt = insert_fn(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={
            key: stmt.excluded[key]
            for key in values
            if key not in conflict_columns
        },
    )
    return session.scalars(
        stmt.returning(model),
        execution_options={"populate_existing": True},
    ).one()


def parse_uuid(value: str, entity: str = "project") -> uuid.UUID:
    """Parse a public uuid. A malformed one cannot name an existing row."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotExistsError(f"Cannot find {entity} with id: {value}") from None


def is_constraint_violation(error: IntegrityError, constraint) -> bool:
    """Check whether an IntegrityError was raised by the given UniqueConstraint.

    PostgreSQL reports the constraint name; SQLite only lists the columns.
    """
    diag = getattr(error.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name is not None:
        return constraint_name == constraint.name

    table = constraint.table.name
    columns = ", ".join(f"{table}.{column.name}" for column in constraint.columns)
    return f"UNIQUE constraint failed: {columns}" in str(error.orig)


_manager: Optional[DatabaseManager] = None


def get_database_manager(database_url: Optional[str] = None) -> DatabaseManager:
    """Return the process-wide DatabaseManager, creating it on first use."""
    global _manager
    if _manager is None:
        if database_url is None:
            from ..config import get_config
            config = get_config()
            database_url = config.database_url
            if not database_url:
                raise RuntimeError("DATABASE_URL is not configured")
            _manager = DatabaseManager(
                database_url,
                pool_size=config.db_pool_size,
                max_overflow=config.db_max_overflow,
            )
        else:
            _manager = DatabaseManager(database_url)
    return _manager


def wait_for_db(db_manager: DatabaseManager, max_time: int = 60) -> None:
    """Block until the database accepts connections or max_time seconds pass."""

    @backoff.on_exception(
        backoff.expo,
        OperationalError,
        max_time=max_time,
        on_backoff=lambda details: logger.warning(
            f"Database not ready, retrying in {details['wait']:.1f}s "
            f"(attempt {details['tries']})"
        ),
    )
    def _ping():
        with db_manager.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    _ping()
    logger.info("Database is available")
