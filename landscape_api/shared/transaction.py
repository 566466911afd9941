"""Commit-or-rollback helper shared by the service layers"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import AppError, DuplicateBookingError, StoreUnavailableError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, action: str):
    """
    Commit everything done inside the block, or roll it all back.

    Application errors propagate unchanged; database errors become the
    client-safe DuplicateBookingError / StoreUnavailableError.
    """
    try:
        yield
        db.commit()
    except AppError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"⚠️ Integrity error during {action}: {e}")
        raise DuplicateBookingError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Database error during {action}: {e}")
        raise StoreUnavailableError() from e
