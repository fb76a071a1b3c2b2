"""
Error taxonomy shared by the repositories and the HTTP layer.

Repositories raise these; ``main.create_app`` maps every ``TodoApiError`` to a
``{"status": ..., "message": ...}`` JSON body in one place.
"""

from __future__ import annotations


class TodoApiError(Exception):
    status_code = 500
    status = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(TodoApiError):
    """Missing, invalid or expired credentials. Message is always generic."""

    status_code = 401
    status = "fail"


class NotFoundError(TodoApiError):
    status_code = 404
    status = "fail"


class ConflictError(TodoApiError):
    status_code = 409
    status = "fail"


class StoreError(TodoApiError):
    status_code = 500
    status = "error"


class ValidationError(TodoApiError):
    """Input that parsed but cannot be processed."""

    status_code = 422
    status = "fail"
