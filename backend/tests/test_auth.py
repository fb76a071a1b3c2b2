"""
Tests for password hashing and the token service.
"""

import time

import jwt
import pytest

from todo_api.auth import Claims, TokenService, hash_password, verify_password
from todo_api.errors import AuthError, ValidationError


class TestPasswordHashing:
    def test_hash_is_self_describing(self):
        h = hash_password("hunter2", iterations=1000)
        algo, iters, salt, digest = h.split("$")
        assert algo == "pbkdf2_sha256"
        assert iters == "1000"
        assert salt and digest

    def test_same_input_gives_different_hashes(self):
        assert hash_password("hunter2", iterations=1000) != hash_password("hunter2", iterations=1000)

    def test_verify_roundtrip(self):
        h = hash_password("hunter2", iterations=1000)
        assert verify_password("hunter2", h) is True
        assert verify_password("hunter3", h) is False

    def test_verify_uses_embedded_iterations(self):
        h = hash_password("hunter2", iterations=1234)
        assert verify_password("hunter2", h) is True

    def test_unencodable_password_is_rejected(self):
        with pytest.raises(ValidationError):
            hash_password("\ud800", iterations=1000)

    def test_verify_unencodable_password_is_a_mismatch(self):
        h = hash_password("hunter2", iterations=1000)
        assert verify_password("\ud800", h) is False

    @pytest.mark.parametrize(
        "bad",
        [
            "",
            "not-a-hash",
            "md5$1000$abc$def",
            "pbkdf2_sha256$notanint$abc$def",
            "pbkdf2_sha256$1000$$",
            "pbkdf2_sha256$0$YWJj$ZGVm",
            "pbkdf2_sha256$1000$!!!$???",
            "pbkdf2_sha256$99999999999999999999$YWJj$ZGVm",
            "pbkdf2_sha256$10000001$YWJj$ZGVm",
        ],
    )
    def test_malformed_hash_is_a_mismatch(self, bad):
        assert verify_password("hunter2", bad) is False


class TestTokenService:
    def test_issue_and_verify(self):
        svc = TokenService("secret")
        claims = svc.verify(svc.issue("user-1"))
        assert isinstance(claims, Claims)
        assert claims.sub == "user-1"

    def test_expiry_is_sixty_minutes(self):
        now = time.time()
        svc = TokenService("secret", clock=lambda: now)
        claims = svc.verify(svc.issue("user-1"))
        assert claims.exp == int(now) + 3600

    def test_valid_just_before_expiry(self):
        svc = TokenService("secret", clock=lambda: time.time() - 3540)
        assert svc.verify(svc.issue("user-1")).sub == "user-1"

    def test_rejected_after_expiry(self):
        svc = TokenService("secret", clock=lambda: time.time() - 3660)
        token = svc.issue("user-1")
        with pytest.raises(AuthError) as exc_info:
            svc.verify(token)
        assert exc_info.value.message == "Invalid or expired token"

    def test_rejects_other_secret(self):
        token = TokenService("other-secret").issue("user-1")
        with pytest.raises(AuthError) as exc_info:
            TokenService("secret").verify(token)
        assert exc_info.value.message == "Invalid or expired token"

    def test_rejects_garbage(self):
        with pytest.raises(AuthError):
            TokenService("secret").verify("not.a.token")

    def test_rejects_token_without_subject(self):
        token = jwt.encode({"exp": int(time.time()) + 60}, "secret", algorithm="HS256")
        with pytest.raises(AuthError):
            TokenService("secret").verify(token)

    def test_missing_secret_fails_fast(self):
        with pytest.raises(RuntimeError):
            TokenService("")
