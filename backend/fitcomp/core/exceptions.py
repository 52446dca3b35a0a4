"""
FitComp - Domain Errors
=======================
Every error raised by the services is an ``HTTPException`` carrying a stable
machine-readable code, so the global handler can render it as an envelope
without a translation table.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class FitCompError(HTTPException):
    """Base class for all domain failures."""

    status_code_default: int = status.HTTP_400_BAD_REQUEST
    code: str = "fitcomp_error"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        detail: dict[str, Any] = {"code": self.code, "message": message}
        detail.update({key: value for key, value in extra.items() if value is not None})
        super().__init__(status_code=self.status_code_default, detail=detail)

    def __str__(self) -> str:
        return self.message


class NotFoundError(FitCompError):
    """Referenced user, competition or entry does not exist."""

    status_code_default = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ForbiddenError(FitCompError):
    """The actor's role or ownership does not allow the operation."""

    status_code_default = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InvalidStateError(FitCompError):
    """The resource exists but its state precludes the operation."""

    status_code_default = status.HTTP_409_CONFLICT
    code = "invalid_state"


class InvalidDateRangeError(FitCompError):
    status_code_default = 422
    code = "invalid_date_range"


class InvalidReferenceError(FitCompError):
    """A user reference does not resolve to an existing, active user."""

    status_code_default = 422
    code = "invalid_reference"


class InvalidValueError(FitCompError):
    status_code_default = 422
    code = "invalid_value"


class DuplicateEmailError(FitCompError):
    status_code_default = status.HTTP_409_CONFLICT
    code = "duplicate_email"


_DENIAL_ERRORS: dict[str, type[FitCompError]] = {
    ForbiddenError.code: ForbiddenError,
    InvalidStateError.code: InvalidStateError,
}


def raise_for_denial(decision: Any) -> None:
    """Raise the error matching a denied access decision; no-op when allowed."""
    if decision.allowed:
        return
    error_cls = _DENIAL_ERRORS.get(decision.code or "", ForbiddenError)
    raise error_cls(decision.message or "Operation not permitted", rule=decision.rule)
