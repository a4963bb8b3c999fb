"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine and session-factory ownership for the
    client-local document store, plus the transactional scope utility every
    storage call runs inside.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, domain/, or storage/
    (except create_tables/drop_tables which import models).

Invariants enforced:
    - One LedgerDatabase per store URL; it is constructed explicitly and
      injected into consumers (no module-level engine).
    - session_scope() commits on success and rolls back + re-raises on any
      exception.  Storage failures are never swallowed.
    - SQLite in-memory URLs use a StaticPool so every session in the
      process sees the same database.

Failure modes:
    - sqlalchemy.exc.OperationalError when the store file cannot be opened
      or tables are missing (call create_tables() first).
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

DEFAULT_DATABASE_URL = "sqlite:///school_ledger.db"


class LedgerDatabase:
    """
    Owner of one SQLAlchemy engine and its session factory.

    Contract:
        Construct with ``from_url()``; pass the instance to DocumentStore.
        Call ``dispose()`` when the process or session ends.

    Guarantees:
        - ``session_scope()`` provides commit-or-rollback semantics.
        - ``expire_on_commit=False`` so loaded rows stay readable after the
          scope closes.

    Non-goals:
        - No connection retry or backoff; the store is local.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> "LedgerDatabase":
        """
        Create the engine for ``database_url``.

        Args:
            database_url: Any SQLAlchemy URL.  ``sqlite://`` (in-memory) is
                pinned to a single shared connection.
            echo: If True, log all SQL statements.
        """
        url = make_url(database_url)
        kwargs: dict = {"echo": echo}
        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        engine = create_engine(url, **kwargs)
        logger.info(
            "engine_initialized",
            extra={"dialect": engine.dialect.name, "echo": echo},
        )
        return cls(engine)

    def get_session(self) -> Session:
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit, session is committed and closed.
            On exception, session is rolled back and closed, and the
            exception is re-raised to the caller.
        """
        session = self.get_session()
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

    def create_tables(self) -> None:
        """Create every table registered on Base.metadata."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401  (registers tables)

        Base.metadata.create_all(self.engine)
        logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution - primarily for testing."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401

        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name
