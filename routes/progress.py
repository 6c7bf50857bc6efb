from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.exc import IntegrityError

from models import Lesson, LessonProgress, utcnow
from schemas.api_models import ProgressResponse
from schemas.validation import ProgressUpdate, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id
from utils.error_handling import InvalidInput
from utils.logging_config import logger

router = APIRouter()


def _lesson(ctx: RequestContext, raw_lesson_id: str) -> Lesson:
    lesson_id = parse_id(raw_lesson_id, "INVALID_LESSON_ID", "Valid lesson ID is required")
    return ctx.get(Lesson, lesson_id, "Lesson not found", "LESSON_NOT_FOUND")


def _own_progress(ctx: RequestContext, lesson_id: int):
    return ctx.owned_query(LessonProgress).filter(LessonProgress.lesson_id == lesson_id).first()


def apply_progress(record: LessonProgress, changes: dict) -> None:
    """completedAt follows the completed flag: set on true, cleared on false."""
    if "completed" in changes:
        record.completed = changes["completed"]
        record.completed_at = utcnow() if changes["completed"] else None
    if "last_position" in changes:
        record.last_position = changes["last_position"]
    record.updated_at = utcnow()


@router.get("/lessons/{lesson_id}/progress", response_model=ProgressResponse)
def get_progress(
    lesson_id: str = Path(..., description="Lesson ID"),
    ctx: RequestContext = Depends(get_request_context),
):
    lesson = _lesson(ctx, lesson_id)
    record = _own_progress(ctx, lesson.id)
    if record is None:
        return ProgressResponse(user_id=ctx.user_id, lesson_id=lesson.id)
    return record


@router.post("/lessons/{lesson_id}/progress", response_model=ProgressResponse)
def save_progress(
    response: Response,
    lesson_id: str = Path(..., description="Lesson ID"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    """Upsert the caller's progress on a lesson: 201 when the row is created, 200 on update."""
    changes = parse_body(ProgressUpdate, body).updates()
    lesson = _lesson(ctx, lesson_id)

    record = _own_progress(ctx, lesson.id)
    if record is not None and not changes:
        raise InvalidInput("No fields to update", "NO_UPDATE_FIELDS")

    if record is None:
        record = LessonProgress(user_id=ctx.user_id, lesson_id=lesson.id, completed=False, last_position=0)
        apply_progress(record, changes)
        ctx.db.add(record)
        try:
            ctx.db.commit()
        except IntegrityError:
            # Lost an insert race on (user, lesson): last write wins on the existing row
            ctx.db.rollback()
            logger.info(f"Progress row for lesson {lesson.id} created concurrently; updating instead")
            record = _own_progress(ctx, lesson.id)
            with ctx.persist("update lesson progress"):
                apply_progress(record, changes)
            response.status_code = status.HTTP_200_OK
        else:
            response.status_code = status.HTTP_201_CREATED
    else:
        with ctx.persist("update lesson progress"):
            apply_progress(record, changes)
        response.status_code = status.HTTP_200_OK

    ctx.db.refresh(record)
    return record
