"""
Request body schemas.

Bodies arrive with camelCase keys (snake_case is accepted too). Field
validators raise ``PydanticCustomError`` whose type is the machine-readable
error code, so ``parse_body`` can turn the first failure into an
``InvalidInput`` carrying that code.
"""

import re
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from models import ProfileRole
from utils.error_handling import InvalidInput

BodyT = TypeVar("BodyT", bound="RequestBody")


def _fail(code: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(code, message)


def positive_int(value: Any, code: str, message: str) -> int:
    """Integers or digit strings greater than zero; booleans are not numbers."""
    if isinstance(value, bool):
        raise _fail(code, message)
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str) and value.strip().isdigit() and int(value.strip()) > 0:
        return int(value.strip())
    raise _fail(code, message)


def required_text(value: Any, code: str, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise _fail(code, message)
    return value.strip()


def optional_text(value: Any, code: str, message: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise _fail(code, message)
    return value.strip() or None


def strict_bool(value: Any, code: str, message: str) -> bool:
    if isinstance(value, bool):
        return value
    raise _fail(code, message)


def non_negative_price(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise _fail("INVALID_PRICE", "Price must be a non-negative number")
    return float(value)


def utc_timestamp(value: Any, code: str, message: str) -> Optional[datetime]:
    """ISO-8601 string (``Z`` suffix allowed) normalized to naive UTC."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise _fail(code, message)
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise _fail(code, message)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _code_name(field: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", field).upper()


def _label(field: str) -> str:
    words = _code_name(field).lower().split("_")
    return " ".join(words).capitalize()


class RequestBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    # Override when one code covers every required field
    missing_code: ClassVar[Optional[str]] = None
    missing_message: ClassVar[Optional[str]] = None

    def updates(self) -> dict:
        """Fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


def parse_body(model: Type[BodyT], body: dict) -> BodyT:
    """Validate ``body`` against ``model``; the first failure becomes an InvalidInput."""
    try:
        return model.model_validate(body)
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else "body"
        if error["type"] == "missing":
            raise InvalidInput(
                model.missing_message or f"{_label(field)} is required",
                model.missing_code or f"MISSING_{_code_name(field)}",
            ) from e
        if error["type"].isupper():
            raise InvalidInput(error["msg"], error["type"]) from e
        raise InvalidInput(f"Invalid {_label(field).lower()}", f"INVALID_{_code_name(field)}") from e


# ============================================================================
# CATEGORIES
# ============================================================================


class CategoryCreate(RequestBody):
    missing_code = "MISSING_REQUIRED_FIELD"
    missing_message = "Category name is required"

    name: str
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return required_text(v, "MISSING_REQUIRED_FIELD", "Category name is required")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return optional_text(v, "INVALID_DESCRIPTION", "Description must be a string")


class CategoryUpdate(RequestBody):
    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return required_text(v, "INVALID_NAME", "Category name cannot be empty")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return optional_text(v, "INVALID_DESCRIPTION", "Description must be a string")


# ============================================================================
# COURSES
# ============================================================================


def _category_id(v):
    if v is None:
        return None
    return positive_int(v, "INVALID_CATEGORY_ID", "Category ID must be a valid integer")


class CourseCreate(RequestBody):
    missing_code = "MISSING_REQUIRED_FIELDS"
    missing_message = "Title, description, and price are required"

    title: str
    description: str
    price: float
    category_id: Optional[int] = None
    duration: Optional[str] = None
    image: Optional[str] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def validate_required_text(cls, v):
        return required_text(v, cls.missing_code, cls.missing_message)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v):
        if v is None:
            raise _fail(cls.missing_code, cls.missing_message)
        return non_negative_price(v)

    @field_validator("category_id", mode="before")
    @classmethod
    def validate_category_id(cls, v):
        return _category_id(v)

    @field_validator("duration", "image", mode="before")
    @classmethod
    def validate_optional_text(cls, v, info):
        return optional_text(v, f"INVALID_{_code_name(info.field_name)}", f"{_label(info.field_name)} must be a string")


class CourseUpdate(RequestBody):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    category_id: Optional[int] = None
    duration: Optional[str] = None
    image: Optional[str] = None
    published: Optional[bool] = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return required_text(v, "INVALID_TITLE", "Title cannot be empty")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return required_text(v, "INVALID_DESCRIPTION", "Description cannot be empty")

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v):
        return non_negative_price(v)

    @field_validator("category_id", mode="before")
    @classmethod
    def validate_category_id(cls, v):
        return _category_id(v)

    @field_validator("duration", "image", mode="before")
    @classmethod
    def validate_optional_text(cls, v, info):
        return optional_text(v, f"INVALID_{_code_name(info.field_name)}", f"{_label(info.field_name)} must be a string")

    @field_validator("published", mode="before")
    @classmethod
    def validate_published(cls, v):
        return strict_bool(v, "INVALID_PUBLISHED", "Published must be true or false")


# ============================================================================
# LESSONS
# ============================================================================


def _order_index(v):
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise _fail("INVALID_ORDER_INDEX", "Order index must be a non-negative integer")
    return v


class LessonFields(RequestBody):
    duration: Optional[str] = None
    video_url: Optional[str] = None
    transcript: Optional[str] = None
    locked: Optional[bool] = None

    @field_validator("duration", "video_url", "transcript", mode="before")
    @classmethod
    def validate_optional_text(cls, v, info):
        return optional_text(v, f"INVALID_{_code_name(info.field_name)}", f"{_label(info.field_name)} must be a string")

    @field_validator("locked", mode="before")
    @classmethod
    def validate_locked(cls, v):
        return strict_bool(v, "INVALID_LOCKED", "Locked must be true or false")


class CourseLessonCreate(LessonFields):
    """Lesson created under ``/courses/{courseId}/lessons``; the position defaults to the end."""

    section_title: str
    title: str
    order_index: Optional[int] = None

    @field_validator("section_title", mode="before")
    @classmethod
    def validate_section_title(cls, v):
        return required_text(v, "MISSING_SECTION_TITLE", "Section title is required")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return required_text(v, "MISSING_TITLE", "Lesson title is required")

    @field_validator("order_index", mode="before")
    @classmethod
    def validate_order_index(cls, v):
        return None if v is None else _order_index(v)


class LessonCreate(LessonFields):
    course_id: int
    section_title: str
    title: str
    order_index: int

    @field_validator("course_id", mode="before")
    @classmethod
    def validate_course_id(cls, v):
        if v is None:
            raise _fail("MISSING_COURSE_ID", "Course ID is required")
        return positive_int(v, "INVALID_COURSE_ID", "Valid course ID is required")

    @field_validator("section_title", mode="before")
    @classmethod
    def validate_section_title(cls, v):
        return required_text(v, "MISSING_SECTION_TITLE", "Section title is required")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return required_text(v, "MISSING_TITLE", "Lesson title is required")

    @field_validator("order_index", mode="before")
    @classmethod
    def validate_order_index(cls, v):
        if v is None:
            raise _fail("MISSING_ORDER_INDEX", "Order index is required")
        return _order_index(v)


class LessonUpdate(LessonFields):
    section_title: Optional[str] = None
    title: Optional[str] = None
    order_index: Optional[int] = None

    @field_validator("section_title", mode="before")
    @classmethod
    def validate_section_title(cls, v):
        return required_text(v, "INVALID_SECTION_TITLE", "Section title cannot be empty")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return required_text(v, "INVALID_TITLE", "Lesson title cannot be empty")

    @field_validator("order_index", mode="before")
    @classmethod
    def validate_order_index(cls, v):
        return _order_index(v)


# ============================================================================
# ENROLLMENTS, REVIEWS, CERTIFICATES
# ============================================================================


class CourseReference(RequestBody):
    """Body naming a single course: enrollment and certificate creation."""

    course_id: int

    @field_validator("course_id", mode="before")
    @classmethod
    def validate_course_id(cls, v):
        if v is None:
            raise _fail("MISSING_COURSE_ID", "Course ID is required")
        return positive_int(v, "INVALID_COURSE_ID", "Valid course ID is required")


class EnrollmentUpdate(RequestBody):
    progress: Optional[int] = None
    last_accessed: Optional[datetime] = None

    @field_validator("progress", mode="before")
    @classmethod
    def validate_progress(cls, v):
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= 100:
            raise _fail("INVALID_PROGRESS", "Progress must be an integer between 0 and 100")
        return v

    @field_validator("last_accessed", mode="before")
    @classmethod
    def validate_last_accessed(cls, v):
        return utc_timestamp(v, "INVALID_LAST_ACCESSED", "Last accessed must be an ISO-8601 timestamp")


def _rating(v):
    if isinstance(v, bool) or not isinstance(v, int) or not 1 <= v <= 5:
        raise _fail("INVALID_RATING", "Rating must be an integer between 1 and 5")
    return v


class ReviewCreate(RequestBody):
    course_id: int
    rating: int
    comment: Optional[str] = None

    @field_validator("course_id", mode="before")
    @classmethod
    def validate_course_id(cls, v):
        if v is None:
            raise _fail("MISSING_COURSE_ID", "Course ID is required")
        return positive_int(v, "INVALID_COURSE_ID", "Valid course ID is required")

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, v):
        if v is None:
            raise _fail("MISSING_RATING", "Rating is required")
        return _rating(v)

    @field_validator("comment", mode="before")
    @classmethod
    def validate_comment(cls, v):
        return optional_text(v, "INVALID_COMMENT", "Comment must be a string")


class ReviewUpdate(RequestBody):
    rating: Optional[int] = None
    comment: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, v):
        return _rating(v)

    @field_validator("comment", mode="before")
    @classmethod
    def validate_comment(cls, v):
        return optional_text(v, "INVALID_COMMENT", "Comment must be a string")


# ============================================================================
# NOTES, PROGRESS, PROFILE
# ============================================================================


class NoteCreate(RequestBody):
    missing_code = "MISSING_CONTENT"
    missing_message = "Note content is required"

    content: str

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v):
        return required_text(v, "MISSING_CONTENT", "Note content is required")


class NoteUpdate(RequestBody):
    missing_code = "INVALID_CONTENT"
    missing_message = "Note content cannot be empty"

    content: str

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v):
        return required_text(v, "INVALID_CONTENT", "Note content cannot be empty")


class ProgressUpdate(RequestBody):
    completed: Optional[bool] = None
    last_position: Optional[int] = None

    @field_validator("completed", mode="before")
    @classmethod
    def validate_completed(cls, v):
        return strict_bool(v, "INVALID_COMPLETED", "Completed must be true or false")

    @field_validator("last_position", mode="before")
    @classmethod
    def validate_last_position(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v < 0:
            raise _fail("INVALID_LAST_POSITION", "Last position must be a non-negative number")
        return int(v)


class ProfileUpdate(RequestBody):
    role: Optional[ProfileRole] = None
    bio: Optional[str] = None
    website: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v):
        try:
            return ProfileRole(v)
        except ValueError:
            raise _fail("INVALID_ROLE", "Role must be either student or instructor")

    @field_validator("bio", "website", mode="before")
    @classmethod
    def validate_optional_text(cls, v, info):
        return optional_text(v, f"INVALID_{_code_name(info.field_name)}", f"{_label(info.field_name)} must be a string")
