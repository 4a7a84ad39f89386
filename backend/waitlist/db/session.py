"""Database session management."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from waitlist.db.engine import engine

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent lazy loading issues
)


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit the block's changes as one unit; roll back on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
