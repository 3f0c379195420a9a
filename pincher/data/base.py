import os
from contextlib import contextmanager
from typing import Optional

import structlog
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from pincher.domain.errors import ConflictError, StoreError

load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is not set")

DB_ISOLATION_LEVEL = os.getenv("DB_ISOLATION_LEVEL", "SERIALIZABLE")

logger = structlog.get_logger(__name__)

Base = declarative_base()

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        isolation_level=DB_ISOLATION_LEVEL,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    engine = create_engine(DATABASE_URL, isolation_level=DB_ISOLATION_LEVEL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables():
    import pincher.data.repositories  # noqa: F401  registers every table

    Base.metadata.create_all(bind=engine)


def drop_tables():
    import pincher.data.repositories  # noqa: F401

    Base.metadata.drop_all(bind=engine)


@contextmanager
def atomic_unit(db, operation: str = "write", conflict: Optional[str] = None):
    """
    Run a block of writes as one all-or-nothing unit.

    Commits when the block finishes; any exception rolls back everything
    flushed so far. Database errors surface as StoreError, every other
    exception is re-raised unchanged after the rollback.

    With `conflict` set, an IntegrityError (a unique constraint lost to a
    concurrent writer) surfaces as ConflictError carrying that message.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        if conflict is not None and isinstance(e, IntegrityError):
            logger.warning("atomic_unit_conflict", operation=operation)
            raise ConflictError(conflict) from e
        logger.error("atomic_unit_rolled_back", operation=operation, exc_info=True)
        raise StoreError(f"could not complete {operation}") from e
    except Exception:
        db.rollback()
        raise
