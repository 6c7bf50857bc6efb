from fastapi import APIRouter, Depends

from schemas.api_models import ProfileResponse
from schemas.validation import ProfileUpdate, parse_body
from utils.access_control import PROFILE_PROTECTED_FIELDS, RequestContext, get_request_context, guarded_body
from utils.error_handling import InvalidInput, log_operation_success

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
def get_profile(ctx: RequestContext = Depends(get_request_context)):
    """The caller's profile; created with the student role on first access."""
    return ProfileResponse.from_profile(ctx.profile())


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body(*PROFILE_PROTECTED_FIELDS)),
):
    changes = parse_body(ProfileUpdate, body).updates()
    if not changes:
        raise InvalidInput("No valid fields to update", "NO_UPDATES")

    profile = ctx.profile()
    with ctx.persist("update profile"):
        for field, value in changes.items():
            setattr(profile, field, value)
    ctx.db.refresh(profile)

    log_operation_success("update profile", f"{ctx.user_id}: {', '.join(sorted(changes))}")
    return ProfileResponse.from_profile(profile)
