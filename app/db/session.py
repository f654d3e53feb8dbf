# app/db/session.py
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def make_engine(db_uri: str) -> Engine:
    if db_uri.startswith("sqlite"):
        # one shared connection so in-memory databases survive across sessions
        return create_engine(
            db_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(
        db_uri,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=10,
        max_overflow=20,
        future=True,
    )


engine: Engine = make_engine(settings.SQLALCHEMY_DATABASE_URI)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    One unit of work: commit when the block finishes, rollback on any error.
    Reads and writes inside the block share the same database transaction.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
