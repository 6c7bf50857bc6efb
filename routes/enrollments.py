from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import joinedload

from models import Course, Enrollment, utcnow
from schemas.api_models import EnrollmentDeleted, EnrollmentResponse
from schemas.validation import CourseReference, EnrollmentUpdate, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id
from utils.error_handling import DuplicateEnrollment, log_operation_success
from utils.listing import ListParams

router = APIRouter()

NOT_FOUND = "Enrollment not found"

SORT_COLUMNS = {
    "enrolledAt": Enrollment.enrolled_at,
    "lastAccessed": Enrollment.last_accessed,
    "progress": Enrollment.progress,
}


@router.get("/enrollments", response_model=Union[EnrollmentResponse, List[EnrollmentResponse]])
def get_enrollments(
    row_id: Optional[str] = Query(None, alias="id"),
    params: ListParams = Depends(),
    ctx: RequestContext = Depends(get_request_context),
):
    if row_id is not None:
        return ctx.owned(Enrollment, parse_id(row_id), NOT_FOUND)

    query = ctx.owned_query(Enrollment).options(joinedload(Enrollment.course))
    return params.apply(query, SORT_COLUMNS, "enrolledAt").all()


@router.post("/enrollments", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def create_enrollment(
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    data = parse_body(CourseReference, body)
    course = ctx.get(Course, data.course_id, "Course not found", "COURSE_NOT_FOUND")

    if ctx.enrollment_for(course.id) is not None:
        raise DuplicateEnrollment()

    now = utcnow()
    enrollment = Enrollment(
        user_id=ctx.user_id, course_id=course.id, progress=0, enrolled_at=now, last_accessed=now
    )
    with ctx.persist("create enrollment", DuplicateEnrollment()):
        ctx.db.add(enrollment)
    ctx.db.refresh(enrollment)

    log_operation_success("enroll", f"user {ctx.user_id} in course {course.id}")
    return enrollment


@router.put("/enrollments", response_model=EnrollmentResponse)
def update_enrollment(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    """
    Record progress. Reaching 100 stamps ``completedAt``; anything lower clears it.
    ``lastAccessed`` is the one client-supplied timestamp and defaults to now.
    """
    enrollment_id = parse_id(row_id)
    data = parse_body(EnrollmentUpdate, body)
    enrollment = ctx.owned(Enrollment, enrollment_id, NOT_FOUND)

    now = utcnow()
    with ctx.persist("update enrollment"):
        if data.progress is not None:
            enrollment.progress = data.progress
            enrollment.completed_at = now if data.progress == 100 else None
        enrollment.last_accessed = data.last_accessed or now
    ctx.db.refresh(enrollment)
    return enrollment


@router.delete("/enrollments", response_model=EnrollmentDeleted)
def delete_enrollment(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    enrollment_id = parse_id(row_id)
    enrollment = ctx.owned(Enrollment, enrollment_id, NOT_FOUND)
    deleted = EnrollmentResponse.model_validate(enrollment)

    with ctx.persist("delete enrollment"):
        ctx.db.delete(enrollment)

    log_operation_success("unenroll", f"user {ctx.user_id} from course {deleted.course_id}")
    return EnrollmentDeleted(message="Successfully unenrolled from course", enrollment=deleted)
