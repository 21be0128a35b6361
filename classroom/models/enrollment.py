"""SQLAlchemy model linking students to classes."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Identity, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from classroom.models.base import Base, TimestampMixin


class Enrollment(TimestampMixin, Base):
    """Association between a student and a class."""

    __tablename__ = "enrollments"

    id = Column(Integer, Identity(always=True), primary_key=True)
    student_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_id = Column(
        Integer,
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "class_id",
            name="uq_enrollments_student_class",
        ),
    )

    student = relationship("User", back_populates="enrollments")
    class_ = relationship("Class", back_populates="enrollments")


__all__ = ["Enrollment"]
