"""SQLAlchemy models for the classroom domain."""

from .base import Base
from .account import CREDENTIAL_PROVIDER, Account  # noqa: F401
from .class_ import DEFAULT_CAPACITY, Class, ClassStatus  # noqa: F401
from .department import Department  # noqa: F401
from .enrollment import Enrollment  # noqa: F401
from .session import UserSession  # noqa: F401
from .subject import Subject  # noqa: F401
from .user import Role, User  # noqa: F401
from .verification import Verification  # noqa: F401

__all__ = [
    "Base",
    "User",
    "Role",
    "UserSession",
    "Account",
    "CREDENTIAL_PROVIDER",
    "Verification",
    "Department",
    "Subject",
    "Class",
    "ClassStatus",
    "DEFAULT_CAPACITY",
    "Enrollment",
]
