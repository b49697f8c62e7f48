"""
Process-wide engine and session factory.

``init_engine_from_url`` must run before anything asks for a session.
SQLite (tests, local tooling) is opened with ``check_same_thread=False``
because batch availability hands one session to each worker thread;
server databases get a pre-pinged pool at READ COMMITTED.  Sessions never
expire on commit, so DTO conversion after a commit does not reload rows.
"""

import atexit
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from rental_kernel.db.base import Base
from rental_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    pool_recycle: int = 1800,
) -> Engine:
    """Create the engine and session factory, replacing any earlier ones."""
    global _engine, _session_factory

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect == "sqlite":
        options = {"connect_args": {"check_same_thread": False}}
    else:
        options = {
            "pool_size": pool_size,
            "pool_pre_ping": True,
            "pool_recycle": pool_recycle,
            "isolation_level": "READ COMMITTED",
        }

    reset_engine()
    _engine = create_engine(url, echo=echo, **options)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": dialect, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("database engine not initialised; call init_engine_from_url() first")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for callers that open one session per thread or per run."""
    get_engine()
    assert _session_factory is not None
    return _session_factory


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on clean exit, roll back and re-raise otherwise."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create kernel and module tables on the current engine."""
    from rental_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every registered table; tests and local tooling only."""
    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose of the current engine, if any (test cleanup)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
