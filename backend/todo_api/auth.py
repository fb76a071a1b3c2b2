from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import time
from typing import Any, Callable

import jwt
from pydantic import BaseModel

from .errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

PBKDF2_ALGO = "pbkdf2_sha256"
PBKDF2_ITERS = 200000
# anything above this in a stored hash is treated as corrupt
MAX_PBKDF2_ITERS = 10_000_000

JWT_ALG = "HS256"
JWT_TTL_SECONDS = 60 * 60

INVALID_TOKEN = "Invalid or expired token"


def _b64(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("utf-8").rstrip("=")


def _b64d(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("utf-8"))


def hash_password(pw: str, iterations: int = PBKDF2_ITERS) -> str:
    # Format: pbkdf2_sha256$iters$salt$hash
    try:
        raw = pw.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError("Password must be valid UTF-8 text") from None
    salt = secrets.token_bytes(16)
    dk = hashlib.pbkdf2_hmac("sha256", raw, salt, iterations, dklen=32)
    return f"{PBKDF2_ALGO}${iterations}${_b64(salt)}${_b64(dk)}"


def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        algo, iters_s, salt_s, hash_s = pw_hash.split("$", 3)
        if algo != PBKDF2_ALGO:
            return False
        iters = int(iters_s)
        salt = _b64d(salt_s)
        expected = _b64d(hash_s)
        if not 0 < iters <= MAX_PBKDF2_ITERS or not salt or not expected:
            return False
        dk = hashlib.pbkdf2_hmac("sha256", pw.encode("utf-8"), salt, iters, dklen=len(expected))
        return hmac.compare_digest(dk, expected)
    except (ValueError, TypeError, AttributeError, OverflowError):
        return False


class Claims(BaseModel):
    sub: str
    exp: int


class TokenService:
    """Issues and verifies signed, expiring identity tokens.

    The secret is handed in once at construction and never changes for the
    lifetime of the service. Every verification failure (bad signature,
    malformed token, missing claims, expiry) surfaces as the same
    ``AuthError`` so callers cannot tell the causes apart.
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = JWT_TTL_SECONDS,
        algorithm: str = JWT_ALG,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise RuntimeError("JWT_SECRET is required")
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, user_id: str) -> str:
        now = int(self._clock())
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self._ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Claims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Token rejected: %s", exc.__class__.__name__)
            raise AuthError(INVALID_TOKEN) from None
        return Claims(sub=payload["sub"], exp=int(payload["exp"]))
