"""Applied data migration bookkeeping."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String
from koobings.database import Base


class SchemaMigration(Base):
    __tablename__ = "schema_migrations"

    version = Column(String, primary_key=True)
    description = Column(String)
    applied_at = Column(DateTime, default=datetime.utcnow)
