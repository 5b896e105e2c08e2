"""User model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from koobings.database import Base


class User(Base):
    """Represents a dashboard user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    role = Column(String)  # admin/business/staff
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=True)
