from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy import func

from models import Course, Lesson, utcnow
from schemas.api_models import LessonDeleted, LessonResponse, LessonSection
from schemas.validation import CourseLessonCreate, LessonCreate, LessonUpdate, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id
from utils.error_handling import log_operation_success

router = APIRouter()


def _lesson_id(raw: Optional[str]) -> int:
    return parse_id(
        raw,
        code="INVALID_LESSON_ID",
        message="Valid lesson ID is required",
        missing_code="MISSING_LESSON_ID",
        missing_message="Lesson ID is required",
    )


def _course_id(raw: str) -> int:
    return parse_id(raw, code="INVALID_COURSE_ID", message="Valid course ID is required")


def _next_order_index(ctx: RequestContext, course_id: int) -> int:
    return ctx.db.query(func.count(Lesson.id)).filter(Lesson.course_id == course_id).scalar() + 1


def _add_lesson(ctx: RequestContext, course: Course, fields: dict) -> Lesson:
    now = utcnow()
    lesson = Lesson(course_id=course.id, created_at=now, updated_at=now, **fields)
    with ctx.persist("create lesson"):
        ctx.db.add(lesson)
    ctx.db.refresh(lesson)
    log_operation_success("create lesson", f"{lesson.id} in course {course.id} by {ctx.user_id}")
    return lesson


@router.get("/lessons", response_model=LessonResponse)
def get_lesson(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    """A single lesson; readable by the course instructor and enrolled students."""
    lesson = ctx.get(Lesson, _lesson_id(row_id), "Lesson not found", "LESSON_NOT_FOUND")
    ctx.require_lesson_access(lesson)
    return lesson


@router.post("/lessons", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
def create_lesson(
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    data = parse_body(LessonCreate, body)
    course = ctx.get(Course, data.course_id, "Course not found", "COURSE_NOT_FOUND")
    ctx.require_course_instructor(course)
    return _add_lesson(ctx, course, data.model_dump(exclude={"course_id"}, exclude_none=True))


@router.put("/lessons", response_model=LessonResponse)
def update_lesson(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    lesson_id = _lesson_id(row_id)
    changes = parse_body(LessonUpdate, body).updates()
    lesson = ctx.get(Lesson, lesson_id, "Lesson not found", "LESSON_NOT_FOUND")
    ctx.require_course_instructor(lesson.course)

    with ctx.persist("update lesson"):
        for field, value in changes.items():
            setattr(lesson, field, value)
        lesson.updated_at = utcnow()
    ctx.db.refresh(lesson)
    return lesson


@router.delete("/lessons", response_model=LessonDeleted)
def delete_lesson(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    lesson_id = _lesson_id(row_id)
    lesson = ctx.get(Lesson, lesson_id, "Lesson not found", "LESSON_NOT_FOUND")
    ctx.require_course_instructor(lesson.course)
    deleted = LessonResponse.model_validate(lesson)

    with ctx.persist("delete lesson"):
        ctx.db.delete(lesson)

    log_operation_success("delete lesson", f"{lesson_id} by {ctx.user_id}")
    return LessonDeleted(message="Lesson deleted successfully", lesson=deleted)


# Nested under the course: /courses/{course_id}/lessons


@router.get("/courses/{course_id}/lessons", response_model=List[LessonSection])
def get_course_curriculum(
    course_id: str = Path(..., description="Course ID"),
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Curriculum grouped by section, in lesson order.

    Any signed-in user may see the outline; video URLs and transcripts are
    only included for the instructor and enrolled students.
    """
    course = ctx.get(Course, _course_id(course_id), "Course not found", "COURSE_NOT_FOUND")
    full_access = ctx.can_view_lesson_content(course)

    lessons = (
        ctx.db.query(Lesson)
        .filter(Lesson.course_id == course.id)
        .order_by(Lesson.order_index, Lesson.id)
        .all()
    )

    sections = {}
    for lesson in lessons:
        item = LessonResponse.model_validate(lesson)
        if not full_access:
            item = item.model_copy(update={"video_url": None, "transcript": None})
        sections.setdefault(lesson.section_title, []).append(item)

    # Sections appear in the order of their first lesson
    return [LessonSection(section_title=title, lessons=items) for title, items in sections.items()]


@router.post("/courses/{course_id}/lessons", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
def create_course_lesson(
    course_id: str = Path(..., description="Course ID"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    parent_id = _course_id(course_id)
    data = parse_body(CourseLessonCreate, body)
    course = ctx.get(Course, parent_id, "Course not found", "COURSE_NOT_FOUND")
    ctx.require_course_instructor(course)

    fields = data.model_dump(exclude_none=True)
    if "order_index" not in fields:
        fields["order_index"] = _next_order_index(ctx, course.id)
    return _add_lesson(ctx, course, fields)
