from koobings.models.appointment import Appointment
from koobings.models.availability import StaffAvailability, StaffUnavailability
from koobings.models.business import Business
from koobings.models.client import Client
from koobings.models.revoked_token import RevokedToken
from koobings.models.schema_migration import SchemaMigration
from koobings.models.service import Service, service_staff
from koobings.models.staff import Staff
from koobings.models.user import User

__all__ = [
    "Appointment",
    "Business",
    "Client",
    "RevokedToken",
    "SchemaMigration",
    "Service",
    "Staff",
    "StaffAvailability",
    "StaffUnavailability",
    "User",
    "service_staff",
]
