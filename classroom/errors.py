"""Error taxonomy shared by the stores and the API layer.

Every store failure is raised as a subclass of :class:`ClassroomError`. Each
subclass belongs to exactly one :class:`ErrorKind`, which the API layer maps
to a single HTTP status, and carries a machine-readable ``code`` that is
echoed in the response body.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from starlette.responses import JSONResponse

from classroom.telemetry import record_domain_error


class ErrorKind(str, Enum):
    """Coarse failure categories, one HTTP status each."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    TRANSIENT = "transient"


class ClassroomError(Exception):
    """Base exception for all domain failures."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT
    code: str = "error"
    message: str = "Request could not be processed"

    def __init__(self, message: str | None = None, **context: Any):
        self.context = context
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


# NotFound


class NotFoundError(ClassroomError):
    kind = ErrorKind.NOT_FOUND
    code = "not_found"
    message = "Resource not found"


class UnknownUserError(NotFoundError):
    code = "unknown_user"
    message = "User not found"


class UnknownDepartmentError(NotFoundError):
    code = "unknown_department"
    message = "Department not found"


class UnknownSubjectError(NotFoundError):
    code = "unknown_subject"
    message = "Subject not found"


class UnknownClassError(NotFoundError):
    code = "unknown_class"
    message = "Class not found"


class UnknownTeacherError(NotFoundError):
    code = "unknown_teacher"
    message = "Teacher not found"


class UnknownStudentError(NotFoundError):
    code = "unknown_student"
    message = "Student not found"


# Conflict


class ConflictError(ClassroomError):
    kind = ErrorKind.CONFLICT
    code = "conflict"
    message = "Request conflicts with existing records"


class DuplicateCodeError(ConflictError):
    code = "duplicate_code"
    message = "Code already in use"


class DuplicateEmailError(ConflictError):
    code = "duplicate_email"
    message = "Email address already registered"


class DuplicateAccountError(ConflictError):
    code = "duplicate_account"
    message = "Account already linked for this provider"


class AlreadyEnrolledError(ConflictError):
    code = "already_enrolled"
    message = "Student is already enrolled in this class"


class CapacityExceededError(ConflictError):
    code = "capacity_exceeded"
    message = "Class has no open seats"


class HasDependentSubjectsError(ConflictError):
    code = "has_dependent_subjects"
    message = "Department still has subjects"


class TeacherHasClassesError(ConflictError):
    code = "teacher_has_classes"
    message = "User still teaches one or more classes"


class StudentHasEnrollmentsError(ConflictError):
    code = "student_has_enrollments"
    message = "User is still enrolled in one or more classes"


# InvalidInput


class InvalidInputError(ClassroomError):
    kind = ErrorKind.INVALID_INPUT
    code = "invalid_input"
    message = "Invalid input"


class InvalidCapacityError(InvalidInputError):
    code = "invalid_capacity"
    message = "Capacity must be a positive integer"


class InvalidBodyError(InvalidInputError):
    code = "invalid_body"
    message = "Request body must be JSON"


class VerificationMismatchError(InvalidInputError):
    code = "verification_mismatch"
    message = "Verification value does not match"


class VerificationExpiredError(InvalidInputError):
    code = "verification_expired"
    message = "Verification value has expired"


# Unauthenticated / Unauthorized


class UnauthenticatedError(ClassroomError):
    kind = ErrorKind.UNAUTHENTICATED
    code = "unauthenticated"
    message = "Authentication required"


class InvalidCredentialsError(UnauthenticatedError):
    code = "invalid_credentials"
    message = "Invalid email or password"


class UnauthorizedError(ClassroomError):
    kind = ErrorKind.UNAUTHORIZED
    code = "forbidden"
    message = "Insufficient role for this action"


# Transient


class TransientStoreError(ClassroomError):
    kind = ErrorKind.TRANSIENT
    code = "transient"
    message = "The data store is temporarily unavailable; retry the request"


class InviteCodeUnavailableError(TransientStoreError):
    code = "invite_code_unavailable"
    message = "Could not allocate a unique invite code"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.TRANSIENT: 503,
}


def status_for(error: ClassroomError) -> int:
    """Return the HTTP status code for a domain error."""

    return STATUS_BY_KIND[error.kind]


def error_response(error: ClassroomError) -> JSONResponse:
    """Render a domain error as ``{"detail": ..., "code": ...}``."""

    record_domain_error(error.kind.value, error.code)
    return JSONResponse(
        status_code=status_for(error),
        content={"detail": error.detail, "code": error.code},
    )


__all__ = [
    "ErrorKind",
    "ClassroomError",
    "NotFoundError",
    "UnknownUserError",
    "UnknownDepartmentError",
    "UnknownSubjectError",
    "UnknownClassError",
    "UnknownTeacherError",
    "UnknownStudentError",
    "ConflictError",
    "DuplicateCodeError",
    "DuplicateEmailError",
    "DuplicateAccountError",
    "AlreadyEnrolledError",
    "CapacityExceededError",
    "HasDependentSubjectsError",
    "TeacherHasClassesError",
    "StudentHasEnrollmentsError",
    "InvalidInputError",
    "InvalidCapacityError",
    "InvalidBodyError",
    "VerificationMismatchError",
    "VerificationExpiredError",
    "UnauthenticatedError",
    "InvalidCredentialsError",
    "UnauthorizedError",
    "TransientStoreError",
    "InviteCodeUnavailableError",
    "STATUS_BY_KIND",
    "status_for",
    "error_response",
]
