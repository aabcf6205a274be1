import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from faceoff.core.config import settings
from faceoff.core.errors import StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str, echo: bool = False, **kwargs):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(url, echo=echo, future=True, connect_args=connect_args, **kwargs)

    if url.startswith("sqlite"):
        # SQLite ignores ON DELETE actions unless foreign keys are switched on per connection
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = make_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(bind=None) -> None:
    """Create every table known to the ORM metadata."""
    import faceoff.models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=bind or engine)


def utcnow() -> datetime:
    """Naive UTC timestamp; every datetime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    One atomic unit of work: commits when the block finishes, rolls back on any error.

    IntegrityError is re-raised untouched so callers can map constraint
    violations to domain errors; any other SQLAlchemy failure becomes a
    StorageError after being logged.
    """
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Transaction rolled back after storage failure")
        raise StorageError() from exc
    except Exception:
        db.rollback()
        raise
