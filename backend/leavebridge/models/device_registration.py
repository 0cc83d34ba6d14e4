"""DeviceRegistration model - push tokens and the recipient they belong to."""
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base


class DeviceRole(str, enum.Enum):
    """Role a device registers under. Drives privileged broadcasts."""
    EMPLOYEE = "employee"
    VALIDATOR = "validator"
    MANAGER = "manager"
    ADMIN = "admin"


# Roles that receive the fallback broadcast for unroutable pending approvals
PRIVILEGED_ROLES = frozenset({DeviceRole.MANAGER, DeviceRole.VALIDATOR, DeviceRole.ADMIN})


class DeviceRegistration(Base):
    """Registered device for push notifications."""

    __tablename__ = "device_registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String, unique=True, nullable=False, index=True)
    # Odoo user id, or employee id for clients that register that way
    recipient_id = Column(String, nullable=True, index=True)
    role = Column(String, nullable=False, default=DeviceRole.EMPLOYEE.value)
    registered_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
