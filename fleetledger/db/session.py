"""
Database session management.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from fleetledger.core.config import settings
from fleetledger.core.exceptions import FleetLedgerError
from fleetledger.db.base import Base

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    pool_recycle=3600
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Run a block of writes as one unit of work.

    Commits when the block exits normally and rolls back on any exception,
    so no partially written document or half-claimed subtrip survives.
    """
    try:
        yield db
        db.commit()
    except FleetLedgerError:
        db.rollback()
        raise
    except Exception:
        logger.exception("Unexpected error, rolling back")
        db.rollback()
        raise


def init_db():
    """Initialize database tables."""
    # Import models so they register on the metadata
    import fleetledger.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
