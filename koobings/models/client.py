"""Client model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from koobings.database import Base


class Client(Base):
    """An end customer of a business."""
    __tablename__ = "clients"
    __table_args__ = (UniqueConstraint("business_id", "email", name="uq_clients_business_email"),)

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String)
