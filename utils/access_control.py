"""
Request-scoped access control.

Handlers run an ordered chain of stages, each of which either passes or
raises an ``ApiError`` that ends the request:

    authenticate -> guard body -> validate -> exists -> authorize -> business rules -> persist

Authentication and the body guard are FastAPI dependencies (``get_request_context``
and ``guarded_body``); the remaining stages are methods on ``RequestContext``,
which carries the caller and a data-access session scoped to that caller.
"""

import json
from typing import Iterable, Optional

from fastapi import Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import get_db
from models import Course, Enrollment, Lesson, ProfileRole, User, UserProfile
from utils.auth_dependencies import get_current_user
from utils.error_handling import (
    AccessDenied,
    ApiError,
    ForbiddenFieldInBody,
    InvalidInput,
    NotEnrolled,
    persist,
    validate_resource_exists,
)
from utils.logging_config import logger
from utils.structured_logging import log_security_event

# Owner identity always comes from the session
IDENTITY_FIELDS = {
    "userId": "USER_ID_NOT_ALLOWED",
    "user_id": "USER_ID_NOT_ALLOWED",
    "instructorId": "INSTRUCTOR_ID_NOT_ALLOWED",
    "instructor_id": "INSTRUCTOR_ID_NOT_ALLOWED",
}

PROFILE_PROTECTED_FIELDS = ("id", "totalStudents", "total_students", "totalCourses", "total_courses")


def parse_id(raw: Optional[str], code: str = "INVALID_ID", message: str = "Valid ID is required",
             missing_code: Optional[str] = None, missing_message: Optional[str] = None) -> int:
    """Parse a positive integer identifier from a query or path string."""
    if raw is None or str(raw).strip() == "":
        raise InvalidInput(missing_message or message, missing_code or code)
    value = str(raw).strip()
    if not value.isdigit() or int(value) <= 0:
        raise InvalidInput(message, code)
    return int(value)


def reject_identity_fields(body: dict, protected: Iterable[str] = (), user_id: Optional[str] = None) -> None:
    """Reject bodies that try to name an owner or set server-maintained fields."""
    for field, code in IDENTITY_FIELDS.items():
        if field in body:
            log_security_event(
                "identity_field_in_body", f"Rejected body field {field}", user_id=user_id, details={"field": field}
            )
            label = "User ID" if code == "USER_ID_NOT_ALLOWED" else "Instructor ID"
            raise ForbiddenFieldInBody(f"{label} cannot be provided in request body", code)

    blocked = [field for field in protected if field in body]
    if blocked:
        log_security_event(
            "protected_field_in_body", "Rejected protected fields", user_id=user_id, details={"fields": blocked}
        )
        raise ForbiddenFieldInBody(
            f"Cannot update protected fields: {', '.join(blocked)}", "PROTECTED_FIELDS_NOT_ALLOWED"
        )


async def read_json_object(request: Request) -> dict:
    if not await request.body():
        return {}
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInput("Request body must be valid JSON", "INVALID_BODY") from e
    if not isinstance(body, dict):
        raise InvalidInput("Request body must be a JSON object", "INVALID_BODY")
    return body


def guarded_body(*protected: str):
    """Dependency factory: authenticated caller's JSON body with identity fields rejected."""

    async def dependency(request: Request, user: User = Depends(get_current_user)) -> dict:
        body = await read_json_object(request)
        reject_identity_fields(body, protected, user_id=user.id)
        return body

    return dependency


class RequestContext:
    """The authenticated caller plus a session scoped to what that caller may touch."""

    def __init__(self, user: User, db: Session):
        self.user = user
        self.db = db
        self._profile: Optional[UserProfile] = None

    @property
    def user_id(self) -> str:
        return self.user.id

    @staticmethod
    def owner_column(model):
        if model is Course:
            return Course.instructor_id
        return model.user_id

    # existence

    def get(self, model, row_id: int, message: str, code: Optional[str] = None):
        row = self.db.query(model).filter(model.id == row_id).first()
        return validate_resource_exists(row, message, code, resource_id=f"{model.__name__} {row_id}")

    # ownership-filtered existence: a non-owner sees NotFound

    def owned_query(self, model):
        return self.db.query(model).filter(self.owner_column(model) == self.user_id)

    def owned(self, model, row_id: int, message: str, code: Optional[str] = None, criteria: Iterable = ()):
        row = self.owned_query(model).filter(model.id == row_id, *criteria).first()
        return validate_resource_exists(
            row, message, code, resource_id=f"{model.__name__} {row_id} for user {self.user_id}"
        )

    # authorization

    def is_instructor_of(self, course: Course) -> bool:
        return course.instructor_id == self.user_id

    def enrollment_for(self, course_id: int) -> Optional[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == self.user_id, Enrollment.course_id == course_id)
            .first()
        )

    def require_enrollment(self, course_id: int, message: Optional[str] = None) -> Enrollment:
        enrollment = self.enrollment_for(course_id)
        if enrollment is None:
            raise NotEnrolled(message)
        return enrollment

    def require_course_instructor(
        self,
        course: Course,
        message: str = "Only the course instructor can modify lessons",
        code: str = "INSTRUCTOR_ONLY",
    ) -> None:
        if not self.is_instructor_of(course):
            self._deny("course_instructor_required", {"course_id": course.id})
            raise AccessDenied(message, code)

    def can_view_lesson_content(self, course: Course) -> bool:
        return self.is_instructor_of(course) or self.enrollment_for(course.id) is not None

    def require_lesson_access(self, lesson: Lesson) -> None:
        if not self.can_view_lesson_content(lesson.course):
            self._deny("lesson_access_denied", {"lesson_id": lesson.id})
            raise AccessDenied("Access denied")

    def profile(self) -> UserProfile:
        """The caller's profile, created with the student role on first access."""
        if self._profile is not None:
            return self._profile

        profile = self.db.query(UserProfile).filter(UserProfile.user_id == self.user_id).first()
        if profile is None:
            profile = UserProfile(user_id=self.user_id, role=ProfileRole.STUDENT)
            self.db.add(profile)
            try:
                self.db.commit()
            except IntegrityError:
                # A concurrent request created it first
                self.db.rollback()
                profile = self.db.query(UserProfile).filter(UserProfile.user_id == self.user_id).one()
            else:
                self.db.refresh(profile)
                logger.info(f"Created default profile for user {self.user_id}")
        self._profile = profile
        return profile

    def require_role(self, role: ProfileRole, message: str, code: str) -> UserProfile:
        profile = self.profile()
        if profile.role != role:
            self._deny("role_required", {"required_role": role.value, "role": profile.role.value})
            raise AccessDenied(message, code)
        return profile

    # persistence

    def persist(self, operation: str, conflict: Optional[ApiError] = None):
        return persist(self.db, operation, conflict)

    def _deny(self, event: str, details: dict) -> None:
        log_security_event(event, "Authorization check failed", user_id=self.user_id, severity="low", details=details)


def get_request_context(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> RequestContext:
    return RequestContext(user, db)
