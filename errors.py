# backend/errors.py
"""
Error taxonomy shared by services and blueprints.

Every class is a werkzeug HTTPException, so raising one anywhere inside a
request ends up in the app-wide handler registered by ``create_app`` and is
rendered as ``{"error": <message>, "code": <discriminator?>}``.
"""
from __future__ import annotations

from werkzeug.exceptions import HTTPException

__all__ = [
    "ApiError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "Conflict",
    "InvalidOrExpired",
    "InvalidResetToken",
    "StorageError",
    "ServerError",
]


class ApiError(HTTPException):
    code = 500
    description = "Internal server error"

    def __init__(self, description: str | None = None, *, error_code: str | None = None, extra: dict | None = None):
        super().__init__(description or self.description)
        self.error_code = error_code
        self.extra = extra or {}

    def to_dict(self) -> dict:
        body = {"error": self.description}
        if self.error_code:
            body["code"] = self.error_code
        body.update(self.extra)
        return body


class BadRequest(ApiError):
    code = 400
    description = "Bad request"


class Unauthorized(ApiError):
    code = 401
    description = "Unauthorized"


class Forbidden(ApiError):
    code = 403
    description = "Forbidden"


class NotFound(ApiError):
    code = 404
    description = "Not found"


class Conflict(ApiError):
    code = 409
    description = "Already exists"


class InvalidOrExpired(ApiError):
    code = 400
    description = "Invalid or expired code"


class InvalidResetToken(InvalidOrExpired):
    code = 401
    description = "Invalid or expired reset token. Please request a new code."


class StorageError(ApiError):
    code = 502
    description = "File storage error"


class ServerError(ApiError):
    code = 500
    description = "Internal server error"
