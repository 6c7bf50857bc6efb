"""
FastAPI Authentication Dependencies
Resolves the caller's identity from the bearer credential
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from db import get_db
from models import User
from utils.error_handling import Unauthenticated
from utils.jwt_utils import TokenError, jwt_manager
from utils.structured_logging import log_authentication_event

bearer_scheme = HTTPBearer(auto_error=False, description="Access token issued by the auth provider")


def _client_details(request: Request) -> dict:
    return {
        "endpoint": str(request.url.path),
        "http_method": request.method,
        "client_ip": request.client.host if request.client else "unknown",
    }


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Resolve the caller if a bearer credential was sent, None otherwise.
    A credential that is present but invalid still fails with 401.
    """
    if credentials is None:
        return None

    try:
        payload = jwt_manager.verify_access_token(credentials.credentials)
    except TokenError as e:
        log_authentication_event("bearer_token", success=False, details={**_client_details(request), "error": str(e)})
        raise Unauthenticated(str(e)) from e

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if user is None:
        log_authentication_event(
            "bearer_token", user_id=payload["sub"], success=False, details={**_client_details(request), "error": "unknown user"}
        )
        raise Unauthenticated("User not found")

    request.state.user_id = user.id
    log_authentication_event("bearer_token", user_id=user.id, success=True, details=_client_details(request))
    return user


async def get_current_user(user: Optional[User] = Depends(get_current_user_optional)) -> User:
    """
    Get current authenticated user - raises 401 if not authenticated
    Use this for endpoints that require authentication
    """
    if user is None:
        raise Unauthenticated()
    return user
