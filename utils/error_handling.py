"""
Error taxonomy and database write helpers shared by every resource handler.

Every failure a handler can report is an ``ApiError``; the application's
exception handlers render it as ``{"error": message, "code": code}`` with the
class's HTTP status. Nothing here is retried.
"""

from contextlib import contextmanager
from typing import Any, Dict, Optional

from fastapi import status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from utils.logging_config import logger


class ApiError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"
    default_code: Optional[str] = None

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.code:
            body["code"] = self.code
        return body


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidInput(ApiError):
    default_message = "Invalid input"
    default_code = "INVALID_INPUT"


class ForbiddenFieldInBody(ApiError):
    default_message = "Identity fields cannot be set in the request body"
    default_code = "USER_ID_NOT_ALLOWED"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AccessDenied(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class DuplicateName(ApiError):
    default_message = "Name already exists"
    default_code = "DUPLICATE_NAME"


class DuplicateEnrollment(ApiError):
    default_message = "Already enrolled in this course"
    default_code = "ALREADY_ENROLLED"


class DuplicateReview(ApiError):
    default_message = "You have already reviewed this course"
    default_code = "DUPLICATE_REVIEW"


class DuplicateCertificate(ApiError):
    default_message = "Certificate already exists for this course"
    default_code = "CERTIFICATE_EXISTS"


class NotEnrolled(ApiError):
    default_message = "You must be enrolled in the course"
    default_code = "NOT_ENROLLED"


class IncompleteCourse(ApiError):
    default_message = "Course must be 100% complete to issue certificate"
    default_code = "INCOMPLETE_COURSE"


def validate_resource_exists(resource: Any, message: str, code: Optional[str] = None, resource_id: Any = None) -> Any:
    """Return ``resource`` or raise NotFound when the lookup came back empty."""
    if resource is None:
        logger.warning(f"{message}: {resource_id}")
        raise NotFound(message, code)
    return resource


@contextmanager
def persist(db: Session, operation: str, conflict: Optional[ApiError] = None):
    """
    Run a write and commit it.

    On ``IntegrityError`` the session is rolled back and ``conflict`` is raised
    in its place (the unique constraint lost a race with a concurrent insert);
    without ``conflict`` the integrity error propagates. Other database errors
    roll back and propagate.

    Usage:
        with persist(db, "create enrollment", DuplicateEnrollment()):
            db.add(enrollment)
    """
    try:
        yield
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error during {operation}: {e.orig}")
        if conflict is not None:
            raise conflict from e
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {operation}: {e}")
        raise


def log_operation_success(operation: str, details: Optional[str] = None) -> None:
    """Log successful operations for audit purposes"""
    if details:
        logger.info(f"Operation successful: {operation} - {details}")
    else:
        logger.info(f"Operation successful: {operation}")
