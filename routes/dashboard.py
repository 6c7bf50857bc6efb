from fastapi import APIRouter, Depends

from models import ProfileRole
from schemas.api_models import InstructorDashboard, StudentDashboard
from utils.access_control import RequestContext, get_request_context
from utils.dashboards import build_instructor_dashboard, build_student_dashboard

router = APIRouter()


@router.get("/dashboard/instructor", response_model=InstructorDashboard)
def instructor_dashboard(ctx: RequestContext = Depends(get_request_context)):
    """Course performance, revenue and recent activity for the calling instructor."""
    ctx.require_role(ProfileRole.INSTRUCTOR, "Access denied. Instructor role required.", "INSTRUCTOR_REQUIRED")
    return build_instructor_dashboard(ctx.db, ctx.user_id)


@router.get("/dashboard/student", response_model=StudentDashboard)
def student_dashboard(ctx: RequestContext = Depends(get_request_context)):
    """Enrollments, recent lesson activity, certificates and recommendations for the calling student."""
    ctx.require_role(ProfileRole.STUDENT, "Student access required", "INSUFFICIENT_PERMISSIONS")
    return build_student_dashboard(ctx.db, ctx.user_id)
