from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from exam_core.config import DATABASE_URL
from exam_core.errors import ExamEngineError, PersistenceFailure

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(bind):
    # sqlite ignores FOREIGN KEY clauses unless asked per connection
    @event.listens_for(bind, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(url: str):
    if url.startswith("sqlite"):
        # FastAPI runs sync routes in a thread pool
        bind = create_engine(url, connect_args={"check_same_thread": False})
        enable_sqlite_foreign_keys(bind)
        return bind
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

Base = declarative_base()


@contextmanager
def session_scope(session_factory=None):
    """
    One unit of work: commit on success, roll back everything on any error.

    Storage errors are re-raised as PersistenceFailure, engine errors
    (integrity, validation, ...) propagate unchanged.
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except ExamEngineError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning("transaction rolled back: %s", e)
        raise PersistenceFailure(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
