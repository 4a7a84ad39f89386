"""Database engine configuration."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from waitlist.core.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite only honours ON DELETE CASCADE with foreign_keys=ON."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str | None = None, **kwargs) -> Engine:
    """Create SQLAlchemy engine."""
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs.setdefault("poolclass", StaticPool)
        sqlite_engine = create_engine(url, echo=settings.DATABASE_ECHO, **kwargs)
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        echo=settings.DATABASE_ECHO,
        **kwargs,
    )


# Global engine instance
engine = create_db_engine()
