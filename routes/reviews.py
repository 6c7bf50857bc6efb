from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import joinedload

from models import Course, Review
from schemas.api_models import ReviewDeleted, ReviewResponse
from schemas.validation import ReviewCreate, ReviewUpdate, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id
from utils.error_handling import DuplicateReview, log_operation_success
from utils.listing import ListParams

router = APIRouter()

NOT_FOUND = "Review not found"

SORT_COLUMNS = {"rating": Review.rating, "createdAt": Review.created_at}


@router.get("/reviews", response_model=Union[ReviewResponse, List[ReviewResponse]])
def get_reviews(
    row_id: Optional[str] = Query(None, alias="id"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    params: ListParams = Depends(),
    ctx: RequestContext = Depends(get_request_context),
):
    """The caller's own reviews, joined with reviewer and course display fields."""
    if row_id is not None:
        return ReviewResponse.from_review(ctx.owned(Review, parse_id(row_id), NOT_FOUND))

    query = (
        ctx.owned_query(Review)
        .join(Review.course)
        .options(joinedload(Review.user), joinedload(Review.course))
    )
    if course_id is not None:
        query = query.filter(
            Review.course_id == parse_id(course_id, "INVALID_COURSE_ID", "Valid course ID is required")
        )
    if params.pattern:
        query = query.filter(or_(Review.comment.ilike(params.pattern), Course.title.ilike(params.pattern)))

    return [ReviewResponse.from_review(review) for review in params.apply(query, SORT_COLUMNS, "createdAt")]


@router.post("/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    data = parse_body(ReviewCreate, body)
    course = ctx.get(Course, data.course_id, "Course not found", "COURSE_NOT_FOUND")
    ctx.require_enrollment(course.id, "You must be enrolled in the course to leave a review")

    existing = ctx.owned_query(Review).filter(Review.course_id == course.id).first()
    if existing is not None:
        raise DuplicateReview()

    review = Review(user_id=ctx.user_id, course_id=course.id, rating=data.rating, comment=data.comment)
    with ctx.persist("create review", DuplicateReview()):
        ctx.db.add(review)
    ctx.db.refresh(review)

    log_operation_success("create review", f"{review.id} on course {course.id} by {ctx.user_id}")
    return ReviewResponse.from_review(review)


@router.put("/reviews", response_model=ReviewResponse)
def update_review(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    review_id = parse_id(row_id)
    changes = parse_body(ReviewUpdate, body).updates()
    review = ctx.owned(Review, review_id, NOT_FOUND)

    with ctx.persist("update review"):
        for field, value in changes.items():
            setattr(review, field, value)
    ctx.db.refresh(review)
    return ReviewResponse.from_review(review)


@router.delete("/reviews", response_model=ReviewDeleted)
def delete_review(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    review_id = parse_id(row_id)
    review = ctx.owned(Review, review_id, NOT_FOUND)
    deleted = ReviewResponse.from_review(review)

    with ctx.persist("delete review"):
        ctx.db.delete(review)

    log_operation_success("delete review", f"{review_id} by {ctx.user_id}")
    return ReviewDeleted(message="Review deleted successfully", review=deleted)
