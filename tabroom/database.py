import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from .errors import TransactionFailure
from .models import db

logger = logging.getLogger(__name__)


@contextmanager
def atomic(operation: str = "write"):
    """
    Run a block of writes as a single transaction on the request session.

    Commits when the block finishes, rolls back on any exception. Storage
    faults are re-raised as TransactionFailure so callers can retry.
    """
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Rolled back {operation}: {e}")
        raise TransactionFailure(f"{operation} failed and was rolled back, please retry") from e
    except Exception:
        db.session.rollback()
        raise
