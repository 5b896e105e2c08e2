"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from koobings.database import Base

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"
NO_SHOW = "NO_SHOW"
REJECTED = "REJECTED"
ACCEPTED = "ACCEPTED"

APPOINTMENT_STATUSES = (PENDING, CONFIRMED, COMPLETED, CANCELLED, NO_SHOW, REJECTED, ACCEPTED)

_BLOCKING_STATUS_CLAUSE = text("status IN ('PENDING', 'CONFIRMED', 'ACCEPTED')")


class Appointment(Base):
    """Represents a booked appointment."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_staff_start", "staff_id", "scheduled_for"),
        Index(
            "uq_appointments_staff_live_slot",
            "staff_id",
            "scheduled_for",
            unique=True,
            postgresql_where=_BLOCKING_STATUS_CLAUSE,
            sqlite_where=_BLOCKING_STATUS_CLAUSE,
        ),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"))
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"))
    scheduled_for = Column(DateTime, nullable=False)
    duration = Column(Integer)
    status = Column(String, default=PENDING)
    notes = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    client = relationship("Client")
    staff = relationship("Staff")
    service = relationship("Service")
