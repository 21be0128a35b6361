"""SQLAlchemy model for application users."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, Column
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import String, Text
from sqlalchemy.orm import relationship

from classroom.models.base import Base, TimestampMixin, enum_values


class Role(str, Enum):
    """Enumeration of supported user roles."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    image = Column(Text, nullable=True)
    image_cld_pub_id = Column(Text, nullable=True)
    role = Column(
        SqlEnum(Role, name="role", values_callable=enum_values),
        nullable=False,
        default=Role.STUDENT,
    )

    sessions = relationship("UserSession", back_populates="user", passive_deletes=True)
    accounts = relationship("Account", back_populates="user", passive_deletes=True)
    taught_classes = relationship("Class", back_populates="teacher", passive_deletes=True)
    enrollments = relationship("Enrollment", back_populates="student", passive_deletes=True)


__all__ = ["User", "Role"]
