"""SQLAlchemy model for catalog departments."""

from __future__ import annotations

from sqlalchemy import Column, Identity, Integer, String, Text
from sqlalchemy.orm import relationship

from classroom.models.base import Base, TimestampMixin


class Department(TimestampMixin, Base):
    __tablename__ = "departments"

    id = Column(Integer, Identity(always=True), primary_key=True)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    subjects = relationship("Subject", back_populates="department", passive_deletes=True)


__all__ = ["Department"]
