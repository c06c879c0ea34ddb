"""
Tests del TokenService: emisión y validación de JWT (HMAC-SHA256).
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from backend.auth import TokenService

SECRET = "test-secret-key-with-at-least-32-characters"


class TestTokenRoundTrip:

    def test_validate_returns_subject_right_after_issue(self):
        service = TokenService(SECRET)
        token = service.issue("admin")
        assert isinstance(token, str) and token
        assert service.validate(token) == "admin"

    def test_token_is_signed_with_hs256(self):
        token = TokenService(SECRET).issue("admin")
        assert jwt.get_unverified_header(token)["alg"] == "HS256"

    def test_expiry_is_two_hours_after_issue(self):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        token = TokenService(SECRET).issue("admin", now=now)
        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == "admin"
        assert claims["exp"] - claims["iat"] == 2 * 60 * 60


class TestTokenExpiry:

    def test_still_valid_just_before_boundary(self):
        service = TokenService(SECRET)
        issued = datetime.now(timezone.utc) - timedelta(hours=2) + timedelta(minutes=1)
        assert service.validate(service.issue("admin", now=issued)) == "admin"

    def test_invalid_after_two_hours(self):
        service = TokenService(SECRET)
        issued = datetime.now(timezone.utc) - timedelta(hours=2, seconds=5)
        assert service.validate(service.issue("admin", now=issued)) is None


class TestTokenRejection:

    def test_wrong_key_is_invalid(self):
        token = TokenService("another-secret-key-with-32-characters!!").issue("admin")
        assert TokenService(SECRET).validate(token) is None

    def test_malformed_token_is_invalid(self):
        service = TokenService(SECRET)
        assert service.validate("not-a-jwt") is None
        assert service.validate("") is None

    def test_tampered_token_is_invalid(self):
        service = TokenService(SECRET)
        header, payload, signature = service.issue("admin").split(".")
        forged_payload = jwt.encode({"sub": "root"}, SECRET).split(".")[1]
        assert service.validate(".".join([header, forged_payload, signature])) is None

    def test_token_without_subject_is_invalid(self):
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode({"exp": exp}, SECRET, algorithm="HS256")
        assert TokenService(SECRET).validate(token) is None
