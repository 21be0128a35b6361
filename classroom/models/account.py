"""SQLAlchemy model for linked credential/provider accounts."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from classroom.models.base import Base, TimestampMixin

CREDENTIAL_PROVIDER = "credential"


class Account(TimestampMixin, Base):
    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True)
    user_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id = Column(String(255), nullable=False)
    provider_id = Column(String(64), nullable=False)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    access_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    refresh_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    scope = Column(Text, nullable=True)
    id_token = Column(Text, nullable=True)
    password = Column(String(256), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "provider_id",
            "account_id",
            name="uq_accounts_provider_account",
        ),
    )

    user = relationship("User", back_populates="accounts")


__all__ = ["Account", "CREDENTIAL_PROVIDER"]
