import functools
import logging
import time

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.errors import Conflict
import app.services.notification_service as notifications

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(fn):
    """Run a service function as one unit of work.

    Commits on success, then dispatches the domain events the function queued
    with ``notifications.enqueue``. Transient ``OperationalError``s are retried
    up to ``DB_RETRY_ATTEMPTS`` times; a concurrent write to a versioned row or
    a lost unique-constraint race becomes ``Conflict``. Business errors roll
    back and propagate untouched.
    """

    @functools.wraps(fn)
    def wrapper(db: Session, *args, **kwargs):
        attempts = max(1, settings.DB_RETRY_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                result = fn(db, *args, **kwargs)
                db.commit()
            except StaleDataError:
                db.rollback()
                notifications.discard_pending(db)
                logger.info("Concurrent update rejected in %s", fn.__name__)
                raise Conflict("Record was modified by another request, reload and retry")
            except IntegrityError as exc:
                db.rollback()
                notifications.discard_pending(db)
                logger.info("Integrity conflict in %s: %s", fn.__name__, exc.orig)
                raise Conflict("Record conflicts with a concurrent change, reload and retry")
            except OperationalError:
                db.rollback()
                notifications.discard_pending(db)
                if attempt == attempts:
                    logger.error("Giving up on %s after %d attempts", fn.__name__, attempts)
                    raise
                logger.warning("Transient database error in %s (attempt %d/%d)", fn.__name__, attempt, attempts)
                time.sleep(settings.DB_RETRY_BACKOFF_SECONDS * attempt)
                continue
            except Exception:
                db.rollback()
                notifications.discard_pending(db)
                raise
            notifications.dispatch_pending(db)
            return result

    return wrapper
