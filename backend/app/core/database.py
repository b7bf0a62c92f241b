from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from sqlalchemy import Connection, Engine, create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

engine = create_engine(
    settings.APP_DATABASE_DSN,
    connect_args=({"check_same_thread": False} if "sqlite" in settings.APP_DATABASE_DSN else {}),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def supports_advisory_locks(bind: Engine | Connection) -> bool:
    return bind.dialect.name == "postgresql"


@contextmanager
def advisory_lock(db: Session, key: UUID) -> Iterator[None]:
    """Hold a PostgreSQL advisory lock keyed by ``key`` while the block runs.

    The lock lives on its own pooled connection, checked out for the whole
    block. ``db`` returns its connection to the pool on every commit, so
    locking through it would unlock on a different connection.
    Other backends run unlocked.
    """
    bind = db.get_bind()
    if not supports_advisory_locks(bind):
        yield
        return

    lock_id = key.int & 0x7FFF_FFFF_FFFF_FFFF
    with bind.engine.connect() as conn:
        conn.execute(text("SELECT pg_advisory_lock(:id)"), {"id": lock_id})
        conn.commit()
        try:
            yield
        finally:
            conn.execute(text("SELECT pg_advisory_unlock(:id)"), {"id": lock_id})
            conn.commit()


def init_db() -> None:
    """Create all tables for the billing models."""
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
