from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from models import Lesson, LessonNote, utcnow
from schemas.api_models import NoteDeleted, NoteResponse
from schemas.validation import NoteCreate, NoteUpdate, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id

router = APIRouter()

NOT_FOUND = "Note not found"


def _lesson(ctx: RequestContext, raw_lesson_id: str) -> Lesson:
    lesson_id = parse_id(raw_lesson_id, "INVALID_LESSON_ID", "Valid lesson ID is required")
    return ctx.get(Lesson, lesson_id, "Lesson not found", "LESSON_NOT_FOUND")


def _note_id(raw: Optional[str]) -> int:
    return parse_id(raw, "INVALID_NOTE_ID", "Valid note ID is required", missing_code="MISSING_NOTE_ID",
                    missing_message="Note ID is required")


@router.get("/lessons/{lesson_id}/notes", response_model=List[NoteResponse])
def get_notes(
    lesson_id: str = Path(..., description="Lesson ID"),
    ctx: RequestContext = Depends(get_request_context),
):
    lesson = _lesson(ctx, lesson_id)
    return (
        ctx.owned_query(LessonNote)
        .filter(LessonNote.lesson_id == lesson.id)
        .order_by(LessonNote.created_at.desc(), LessonNote.id.desc())
        .all()
    )


@router.post("/lessons/{lesson_id}/notes", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
def create_note(
    lesson_id: str = Path(..., description="Lesson ID"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    data = parse_body(NoteCreate, body)
    lesson = _lesson(ctx, lesson_id)

    now = utcnow()
    note = LessonNote(user_id=ctx.user_id, lesson_id=lesson.id, content=data.content, created_at=now, updated_at=now)
    with ctx.persist("create note"):
        ctx.db.add(note)
    ctx.db.refresh(note)
    return note


@router.put("/lessons/{lesson_id}/notes", response_model=NoteResponse)
def update_note(
    lesson_id: str = Path(..., description="Lesson ID"),
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    note_id = _note_id(row_id)
    data = parse_body(NoteUpdate, body)
    lesson = _lesson(ctx, lesson_id)
    note = ctx.owned(LessonNote, note_id, NOT_FOUND, criteria=[LessonNote.lesson_id == lesson.id])

    with ctx.persist("update note"):
        note.content = data.content
        note.updated_at = utcnow()
    ctx.db.refresh(note)
    return note


@router.delete("/lessons/{lesson_id}/notes", response_model=NoteDeleted)
def delete_note(
    lesson_id: str = Path(..., description="Lesson ID"),
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    note_id = _note_id(row_id)
    lesson = _lesson(ctx, lesson_id)
    note = ctx.owned(LessonNote, note_id, NOT_FOUND, criteria=[LessonNote.lesson_id == lesson.id])
    deleted = NoteResponse.model_validate(note)

    with ctx.persist("delete note"):
        ctx.db.delete(note)
    return NoteDeleted(message="Note deleted successfully", deleted_note=deleted)
