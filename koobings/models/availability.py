"""Staff availability model definitions."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from koobings.database import Base


class StaffAvailability(Base):
    """Weekly working schedule of a staff member, stored as JSON."""
    __tablename__ = "staff_availability"

    id = Column(Integer, primary_key=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), unique=True, nullable=False)
    schedule = Column(JSON, nullable=False, default=dict)

    staff = relationship("Staff", back_populates="availability")


class StaffUnavailability(Base):
    """An ad-hoc period (vacation, sick leave) during which a staff member cannot be booked."""
    __tablename__ = "staff_unavailability"

    id = Column(Integer, primary_key=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(String)

    staff = relationship("Staff", back_populates="unavailability")
