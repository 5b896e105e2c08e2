"""Service model definitions."""

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from koobings.database import Base


service_staff = Table(
    "service_staff",
    Base.metadata,
    Column("service_id", Integer, ForeignKey("services.id"), primary_key=True),
    Column("staff_id", Integer, ForeignKey("staff.id"), primary_key=True),
)


class Service(Base):
    """A bookable service with a fixed duration in minutes."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)
    price = Column(Float, default=0.0)
    is_active = Column(Boolean, default=True)

    business = relationship("Business", back_populates="services")
    # Empty means any staff member of the business can perform the service.
    staff = relationship("Staff", secondary=service_staff)

    def is_performed_by(self, staff_id: int) -> bool:
        if not self.staff:
            return True
        return any(member.id == staff_id for member in self.staff)
