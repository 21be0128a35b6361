"""SQLAlchemy model for subjects offered by a department."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Identity, Integer, String, Text
from sqlalchemy.orm import relationship

from classroom.models.base import Base, TimestampMixin


class Subject(TimestampMixin, Base):
    __tablename__ = "subjects"

    id = Column(Integer, Identity(always=True), primary_key=True)
    department_id = Column(
        Integer,
        ForeignKey("departments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    department = relationship("Department", back_populates="subjects")
    classes = relationship("Class", back_populates="subject", passive_deletes=True)


__all__ = ["Subject"]
