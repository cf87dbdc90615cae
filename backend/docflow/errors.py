# Overview: Typed error taxonomy and the Result wrapper returned across the core boundary.

"""
Services raise DocflowError subclasses internally so that the surrounding
database transaction is rolled back; the public entry points catch them and
hand the caller a Result instead. Routes translate Result.error.kind into an
HTTP status via HTTP_STATUS_BY_KIND.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")


class ErrorKind(str, Enum):
    AUTHENTICATION_REQUIRED = "authentication_required"
    PERMISSION_DENIED = "permission_denied"
    BRANCH_ACCESS_DENIED = "branch_access_denied"
    INVALID_TRANSITION = "invalid_transition"
    PRECONDITION_FAILED = "precondition_failed"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"


HTTP_STATUS_BY_KIND = {
    ErrorKind.AUTHENTICATION_REQUIRED: 401,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.BRANCH_ACCESS_DENIED: 403,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.PRECONDITION_FAILED: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_ERROR: 400,
}


class DocflowError(Exception):
    """Base class for every domain failure the core reports."""
    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, detail: str, *, document_ids: list[int] | None = None, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.document_ids = list(document_ids or [])
        self.context = context

    def to_dict(self) -> dict:
        data = {"kind": self.kind.value, "error": self.detail}
        if self.document_ids:
            data["document_ids"] = self.document_ids
        for key, value in self.context.items():
            if value is not None:
                data[key] = value
        return data


class AuthenticationRequired(DocflowError):
    kind = ErrorKind.AUTHENTICATION_REQUIRED


class PermissionDenied(DocflowError):
    kind = ErrorKind.PERMISSION_DENIED


class BranchAccessDenied(DocflowError):
    kind = ErrorKind.BRANCH_ACCESS_DENIED


class InvalidTransition(DocflowError):
    """Action is not legal from the document's current state."""
    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, detail: str, *, current_state: str, requested: str, **kwargs: Any):
        super().__init__(detail, current_state=current_state, requested=requested, **kwargs)
        self.current_state = current_state
        self.requested = requested


class PreconditionFailed(DocflowError):
    """Action is legal by state but a data precondition is unmet."""
    kind = ErrorKind.PRECONDITION_FAILED


class NotFound(DocflowError):
    kind = ErrorKind.NOT_FOUND


class ValidationError(DocflowError):
    """400-level input problem."""
    kind = ErrorKind.VALIDATION_ERROR


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a core operation: either a value or a DocflowError.

    Never both, never neither.
    """
    value: Optional[T] = None
    error: Optional[DocflowError] = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def success(cls, value: T = None, *, warnings: list[str] | None = None) -> "Result[T]":
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: DocflowError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None

    def unwrap(self) -> T:
        """Return the value or re-raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
