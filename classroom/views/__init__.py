"""Pydantic schemas used as views in the MVC architecture."""

from .auth import (
    AuthResponse,
    CurrentSessionResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    VerificationIssuedResponse,
    VerificationRequest,
    VerifyEmailRequest,
)
from .classes import (
    ClassCreateRequest,
    ClassResponse,
    ClassStatusUpdateRequest,
    EnrollmentCreateRequest,
    EnrollmentResponse,
    JoinClassRequest,
)
from .common import CamelModel, Pagination
from .departments import DepartmentCreateRequest, DepartmentResponse, DepartmentSummary
from .subjects import (
    SubjectCreateRequest,
    SubjectListResponse,
    SubjectResponse,
    SubjectUpdateRequest,
)
from .users import UserResponse, UserRoleUpdateRequest

__all__ = [
    "AuthResponse",
    "CurrentSessionResponse",
    "SessionResponse",
    "SignInRequest",
    "SignUpRequest",
    "VerificationIssuedResponse",
    "VerificationRequest",
    "VerifyEmailRequest",
    "ClassCreateRequest",
    "ClassResponse",
    "ClassStatusUpdateRequest",
    "EnrollmentCreateRequest",
    "EnrollmentResponse",
    "JoinClassRequest",
    "CamelModel",
    "Pagination",
    "DepartmentCreateRequest",
    "DepartmentResponse",
    "DepartmentSummary",
    "SubjectCreateRequest",
    "SubjectListResponse",
    "SubjectResponse",
    "SubjectUpdateRequest",
    "UserResponse",
    "UserRoleUpdateRequest",
]
