"""Short-lived verification challenges (email verification, password reset)."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text

from classroom.models.base import Base, TimestampMixin


class Verification(TimestampMixin, Base):
    __tablename__ = "verifications"

    id = Column(String(64), primary_key=True)
    identifier = Column(String(255), nullable=False, index=True)
    value = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)


__all__ = ["Verification"]
