import time
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import joinedload

from config import settings
from models import Certificate, Course, utcnow
from schemas.api_models import CertificateDeleted, CertificateResponse
from schemas.validation import CourseReference, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id
from utils.error_handling import DuplicateCertificate, IncompleteCourse, log_operation_success
from utils.listing import ListParams

router = APIRouter()

NOT_FOUND = "Certificate not found"
SORT_COLUMNS = {"issuedDate": Certificate.issued_date, "createdAt": Certificate.created_at}


def certificate_url(user_id: str, course_id: int) -> str:
    return f"{settings.CERTIFICATE_BASE_URL.rstrip('/')}/{user_id}/{course_id}/{int(time.time() * 1000)}.pdf"


@router.get("/certificates", response_model=Union[CertificateResponse, List[CertificateResponse]])
def get_certificates(
    row_id: Optional[str] = Query(None, alias="id"),
    params: ListParams = Depends(),
    ctx: RequestContext = Depends(get_request_context),
):
    if row_id is not None:
        return ctx.owned(Certificate, parse_id(row_id), NOT_FOUND)

    query = ctx.owned_query(Certificate).options(joinedload(Certificate.course))
    return params.apply(query, SORT_COLUMNS, "issuedDate").all()


@router.post("/certificates", response_model=CertificateResponse, status_code=status.HTTP_201_CREATED)
def issue_certificate(
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    """Issue a certificate once the caller's enrollment reaches exactly 100%."""
    data = parse_body(CourseReference, body)
    course = ctx.get(Course, data.course_id, "Course not found", "COURSE_NOT_FOUND")
    enrollment = ctx.require_enrollment(course.id, "You must be enrolled in this course")

    if enrollment.progress != 100:
        raise IncompleteCourse()

    if ctx.owned_query(Certificate).filter(Certificate.course_id == course.id).first() is not None:
        raise DuplicateCertificate()

    now = utcnow()
    certificate = Certificate(
        user_id=ctx.user_id,
        course_id=course.id,
        issued_date=now,
        created_at=now,
        certificate_url=certificate_url(ctx.user_id, course.id),
    )
    with ctx.persist("issue certificate", DuplicateCertificate()):
        ctx.db.add(certificate)
    ctx.db.refresh(certificate)

    log_operation_success("issue certificate", f"course {course.id} for {ctx.user_id}")
    return certificate


@router.delete("/certificates", response_model=CertificateDeleted)
def revoke_certificate(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    certificate_id = parse_id(row_id)
    certificate = ctx.owned(Certificate, certificate_id, NOT_FOUND)
    deleted = CertificateResponse.model_validate(certificate)

    with ctx.persist("revoke certificate"):
        ctx.db.delete(certificate)

    log_operation_success("revoke certificate", f"{certificate_id} by {ctx.user_id}")
    return CertificateDeleted(message="Certificate revoked successfully", certificate=deleted)
