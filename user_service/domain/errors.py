"""Typed failures raised by the directory and the authorization check."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNEXPECTED = "unexpected"


class UserServiceError(Exception):
    """Base class for failures the HTTP boundary knows how to render."""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    code: str = "InternalServerError"
    field: str | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EmailAlreadyExistsError(UserServiceError):
    """Another user already holds the normalised email."""

    kind = ErrorKind.CONFLICT
    code = "EmailAlreadyExists"
    field = "email"

    def __init__(self, email: str) -> None:
        super().__init__(f"Email '{email}' is already in use.")
        self.email = email


class UserNotFoundError(UserServiceError):
    kind = ErrorKind.NOT_FOUND
    code = "UserNotFound"

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class AuthorizationError(UserServiceError):
    """The asserted role is not allowed to run the operation."""

    kind = ErrorKind.FORBIDDEN
    code = "Forbidden"

    def __init__(self, message: str = "Forbidden resource") -> None:
        super().__init__(message)
