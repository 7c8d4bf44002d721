# app/shared/database/transactions.py
from contextlib import contextmanager
import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

@contextmanager
def unit_of_work(db: Session, error_message: str):
    """
    Run the steps of one mutation and commit them together.

    Any failure inside the block rolls every step back, so multi-step
    mutations never leave partial rows behind.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"{error_message}: {e.orig}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{error_message}: constraint violation"
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{error_message}: {str(e)}")
        # Statement text and parameters stay in the log
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_message
        )
    except Exception:
        db.rollback()
        raise
