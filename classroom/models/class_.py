"""SQLAlchemy model for classes taught within a subject."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import CheckConstraint, Column
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import ForeignKey, Identity, Integer, String, Text
from sqlalchemy.orm import relationship

from classroom.models.base import Base, JSONType, TimestampMixin, enum_values

DEFAULT_CAPACITY = 50


class ClassStatus(str, Enum):
    """Lifecycle of a class."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class Class(TimestampMixin, Base):
    """A class owned by a subject and taught by a single teacher."""

    __tablename__ = "classes"

    id = Column(Integer, Identity(always=True), primary_key=True)
    subject_id = Column(
        Integer,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    invite_code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    banner_cld_pub_id = Column(Text, nullable=True)
    banner_url = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=False, default=DEFAULT_CAPACITY)
    description = Column(Text, nullable=True)
    status = Column(
        SqlEnum(ClassStatus, name="class_status", values_callable=enum_values),
        nullable=False,
        default=ClassStatus.ACTIVE,
    )
    # Opaque, ordered schedule slots; stored verbatim.
    schedules = Column(JSONType, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_classes_capacity_positive"),
    )

    subject = relationship("Subject", back_populates="classes")
    teacher = relationship("User", back_populates="taught_classes")
    enrollments = relationship("Enrollment", back_populates="class_", passive_deletes=True)


__all__ = ["Class", "ClassStatus", "DEFAULT_CAPACITY"]
