"""
Error taxonomy for the engagement API.

Every service operation raises exactly one of these kinds. The FastAPI
handlers in main.py turn them into ``{"message": ...}`` bodies with the
matching status code.
"""

import logging
from contextlib import contextmanager
from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class NaagrikError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(NaagrikError):
    """Malformed or missing caller input"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(NaagrikError):
    """Missing, malformed or expired credential"""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "No token, authorization denied"


class Forbidden(NaagrikError):
    """Valid credential, insufficient role"""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Admin access required"


class NotFound(NaagrikError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class IntegrityError(NaagrikError):
    """A stored reference did not resolve where it always should"""
    default_message = "Server error"


class UnexpectedError(NaagrikError):
    """Storage unavailable or any other fault the caller cannot act on"""
    default_message = "Server error"


@contextmanager
def storage_guard(db: Session, action: str):
    """
    Run a unit of database work and map its failures onto the taxonomy.

    Domain errors pass through after a rollback. Any SQLAlchemy fault is
    logged with its traceback and surfaces as UnexpectedError.
    """
    try:
        yield
    except NaagrikError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Database error during {action}")
        raise UnexpectedError()
