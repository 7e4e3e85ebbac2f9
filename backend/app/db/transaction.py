"""One unit of work per service call: commit on success, roll back on any error."""
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessError, ClinicError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session):
    """
    Wrap multi-statement writes so a partial write is never observable.

        with atomic(db):
            ...  # inserts / updates
        # committed here

    Domain errors roll back and propagate unchanged. Database errors roll
    back and surface as a generic ServerError.
    """
    try:
        yield db
        db.commit()
    except ClinicError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise BusinessError.server_error(e) from e
