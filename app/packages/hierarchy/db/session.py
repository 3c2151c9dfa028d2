"""Database engine, session factory and transaction boundary."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.packages.hierarchy.core.config import get_settings

settings = get_settings()

_connect_args = {"check_same_thread": False} if settings.sql_database_url.startswith("sqlite") else {}

# ``pool_pre_ping`` keeps the connection pool healthy; ``echo`` mirrors SQL logs
# when enabled in settings for easier debugging.
engine = create_engine(
    settings.sql_database_url,
    pool_pre_ping=True,
    echo=settings.database_echo,
    connect_args=_connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run a unit of work atomically: commit on success, roll back on any error.

    Every multi-row write of the hierarchy engine goes through this block, so a
    failure halfway through a subtree re-path leaves no partial rows behind.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
