"""Business (tenant) model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from koobings.core import config
from koobings.database import Base


class Business(Base):
    """Tenant root: owns staff, services, clients and appointments."""
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True)
    timezone = Column(String, default=config.DEFAULT_TIMEZONE)
    settings = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    staff = relationship("Staff", back_populates="business")
    services = relationship("Service", back_populates="business")
