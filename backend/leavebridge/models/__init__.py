"""Database models."""
from .device_registration import DeviceRegistration, DeviceRole

__all__ = ["DeviceRegistration", "DeviceRole"]
