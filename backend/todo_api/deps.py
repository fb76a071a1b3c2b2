from __future__ import annotations

from typing import Iterator

from fastapi import Header, Request
from sqlalchemy.orm import Session

from .auth import INVALID_TOKEN, TokenService
from .errors import AuthError


def get_session(request: Request) -> Iterator[Session]:
    """One pooled connection per request, released on every exit path."""
    with Session(request.app.state.engine) as s:
        try:
            yield s
        except Exception:
            s.rollback()
            raise


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_user_id(request: Request, authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise AuthError("Missing authorization header")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthError(INVALID_TOKEN)
    claims = get_token_service(request).verify(token)
    return claims.sub
