import pytest
import jwt
from datetime import datetime, timedelta, timezone

from utils.jwt_utils import JWTManager, TokenError

SECRET = "unit-test-signing-secret-abcdefghijklmnop"


@pytest.fixture
def manager():
    return JWTManager(secret=SECRET, algorithm="HS256", audience="", issuer="")


class TestJWTManager:
    def test_round_trip_subject(self, manager):
        token = manager.create_access_token("user-abc")
        payload = manager.verify_access_token(token)
        assert payload["sub"] == "user-abc"
        assert "jti" in payload

    def test_expired_token(self, manager):
        token = manager.create_access_token("user-abc", expires_minutes=-1)
        with pytest.raises(TokenError, match="expired"):
            manager.verify_access_token(token)

    def test_wrong_secret(self, manager):
        other = JWTManager(secret="another-signing-secret-abcdefghijklmnopq", audience="", issuer="")
        token = other.create_access_token("user-abc")
        with pytest.raises(TokenError, match="Invalid token"):
            manager.verify_access_token(token)

    def test_missing_subject(self, manager):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)}, SECRET, algorithm="HS256"
        )
        with pytest.raises(TokenError):
            manager.verify_access_token(token)

    def test_audience_enforced_when_configured(self):
        issuing = JWTManager(secret=SECRET, audience="marketplace", issuer="")
        verifying = JWTManager(secret=SECRET, audience="other-app", issuer="")
        with pytest.raises(TokenError):
            verifying.verify_access_token(issuing.create_access_token("user-abc"))
        assert issuing.verify_access_token(issuing.create_access_token("user-abc"))["aud"] == "marketplace"
