"""Staff model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from koobings.database import Base


class Staff(Base):
    """An employee of a business who can be assigned appointments."""
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, index=True)
    role = Column(String, default="STAFF")
    is_active = Column(Boolean, default=True)

    business = relationship("Business", back_populates="staff")
    availability = relationship(
        "StaffAvailability",
        back_populates="staff",
        uselist=False,
        cascade="all, delete-orphan",
    )
    unavailability = relationship(
        "StaffUnavailability",
        back_populates="staff",
        cascade="all, delete-orphan",
    )
