"""Bearer token utilities for identities issued by the external auth provider"""

import jwt
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from config import settings


class TokenError(Exception):
    """Raised when a bearer token cannot be trusted"""


class JWTManager:
    """Verifies access tokens; the same settings let tests and local tooling mint them."""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.secret = secret or settings.AUTH_JWT_SECRET
        self.algorithm = algorithm or settings.AUTH_JWT_ALGORITHM
        self.audience = audience if audience is not None else settings.AUTH_JWT_AUDIENCE
        self.issuer = issuer if issuer is not None else settings.AUTH_JWT_ISSUER

    def create_access_token(self, user_id: str, expires_minutes: int = 60, extra_claims: Optional[Dict] = None) -> str:
        """
        Create a signed access token for ``user_id``

        Args:
            user_id: The external identity, stored as ``sub``
            expires_minutes: Token lifetime in minutes (default: 60)
            extra_claims: Additional claims merged into the payload
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": now + timedelta(minutes=expires_minutes),
        }
        if self.audience:
            payload["aud"] = self.audience
        if self.issuer:
            payload["iss"] = self.issuer
        if extra_claims:
            payload.update(extra_claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> Dict:
        """
        Decode and verify an access token

        Returns:
            The decoded payload

        Raises:
            TokenError: expired, malformed, wrongly signed, or missing ``sub``
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience or None,
                issuer=self.issuer or None,
                options={"verify_aud": bool(self.audience), "require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise TokenError("Invalid token") from e

        if not isinstance(payload.get("sub"), str) or not payload["sub"]:
            raise TokenError("Token subject is missing")
        return payload


jwt_manager = JWTManager()


def create_access_token(user_id: str, expires_minutes: int = 60) -> str:
    return jwt_manager.create_access_token(user_id, expires_minutes)
