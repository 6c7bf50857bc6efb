from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from db import get_db
from models import Category, Course, utcnow
from schemas.api_models import CourseDeleted, CourseDetailResponse, CourseResponse
from schemas.validation import CourseCreate, CourseUpdate, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id
from utils.error_handling import DuplicateName, InvalidInput, NotFound, log_operation_success
from utils.listing import ListParams
from utils.logging_config import logger

router = APIRouter()

DUPLICATE_TITLE = "Course title already exists"
NOT_FOUND_OR_DENIED = "Course not found or access denied"

SORT_COLUMNS = {
    "title": Course.title,
    "price": Course.price,
    "rating": Course.rating,
    "studentsCount": Course.students_count,
    "createdAt": Course.created_at,
}


def _ensure_unique_title(db: Session, title: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Course).filter(Course.title == title)
    if exclude_id is not None:
        query = query.filter(Course.id != exclude_id)
    if query.first() is not None:
        logger.warning(f"Duplicate course title rejected: {title}")
        raise DuplicateName(DUPLICATE_TITLE)


def _ensure_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is not None and db.query(Category).filter(Category.id == category_id).first() is None:
        raise NotFound("Category not found", "CATEGORY_NOT_FOUND")


def _published_filter(raw: Optional[str]) -> Optional[bool]:
    if raw is None or raw == "":
        return None
    if raw.lower() not in ("true", "false"):
        raise InvalidInput("Published filter must be true or false", "INVALID_PUBLISHED")
    return raw.lower() == "true"


@router.get("/courses", response_model=Union[CourseDetailResponse, List[CourseDetailResponse]])
def get_courses(
    row_id: Optional[str] = Query(None, alias="id"),
    category: Optional[str] = Query(None, description="Category ID"),
    published: Optional[str] = Query(None, description="true or false"),
    params: ListParams = Depends(),
    db: Session = Depends(get_db),
):
    """Catalog browsing; no credential required."""
    query = db.query(Course).options(joinedload(Course.instructor), joinedload(Course.category))

    if row_id is not None:
        course_id = parse_id(row_id)
        course = query.filter(Course.id == course_id).first()
        if course is None:
            logger.warning(f"Course not found: {course_id}")
            raise NotFound("Course not found", "COURSE_NOT_FOUND")
        return CourseDetailResponse.from_course(course)

    if params.pattern:
        query = query.filter(or_(Course.title.ilike(params.pattern), Course.description.ilike(params.pattern)))
    if category is not None:
        query = query.filter(
            Course.category_id == parse_id(category, "INVALID_CATEGORY_ID", "Category ID must be a valid integer")
        )
    published_flag = _published_filter(published)
    if published_flag is not None:
        query = query.filter(Course.published == published_flag)

    return [CourseDetailResponse.from_course(course) for course in params.apply(query, SORT_COLUMNS, "createdAt")]


@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    data = parse_body(CourseCreate, body)
    _ensure_category(ctx.db, data.category_id)
    _ensure_unique_title(ctx.db, data.title)

    now = utcnow()
    course = Course(
        title=data.title,
        description=data.description,
        price=data.price,
        category_id=data.category_id,
        duration=data.duration,
        image=data.image,
        instructor_id=ctx.user_id,
        published=False,
        students_count=0,
        rating=0,
        total_ratings=0,
        created_at=now,
        updated_at=now,
    )
    with ctx.persist("create course", DuplicateName(DUPLICATE_TITLE)):
        ctx.db.add(course)
    ctx.db.refresh(course)

    log_operation_success("create course", f"{course.id} by {ctx.user_id}")
    return course


@router.put("/courses", response_model=CourseResponse)
def update_course(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    course_id = parse_id(row_id)
    changes = parse_body(CourseUpdate, body).updates()
    course = ctx.owned(Course, course_id, NOT_FOUND_OR_DENIED)

    if "category_id" in changes:
        _ensure_category(ctx.db, changes["category_id"])
    if "title" in changes:
        _ensure_unique_title(ctx.db, changes["title"], exclude_id=course.id)

    with ctx.persist("update course", DuplicateName(DUPLICATE_TITLE)):
        for field, value in changes.items():
            setattr(course, field, value)
        course.updated_at = utcnow()
    ctx.db.refresh(course)

    log_operation_success("update course", f"{course.id} by {ctx.user_id}")
    return course


@router.delete("/courses", response_model=CourseDeleted)
def delete_course(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    course_id = parse_id(row_id)
    course = ctx.owned(Course, course_id, NOT_FOUND_OR_DENIED)
    deleted = CourseResponse.model_validate(course)

    with ctx.persist("delete course"):
        ctx.db.delete(course)

    log_operation_success("delete course", f"{course_id} by {ctx.user_id}")
    return CourseDeleted(message="Course deleted successfully", course=deleted)
