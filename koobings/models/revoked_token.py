"""Revoked token model definitions."""

from sqlalchemy import Column, DateTime, String
from koobings.database import Base


class RevokedToken(Base):
    """A JWT id that must no longer be accepted until it expires."""
    __tablename__ = "revoked_tokens"

    jti = Column(String, primary_key=True)
    expires_at = Column(DateTime, nullable=False, index=True)
