"""Pydantic schemas for API request/response models."""
from .device import (
    DeviceRegisterRequest,
    DeviceRegisterResponse,
    DeviceUnregisterRequest,
    DeviceUnregisterResponse,
    DeviceSummary,
    DeviceListResponse,
)
from .role import RoleLookupRequest, RoleLookupResponse
from .status import HealthResponse

__all__ = [
    "DeviceRegisterRequest",
    "DeviceRegisterResponse",
    "DeviceUnregisterRequest",
    "DeviceUnregisterResponse",
    "DeviceSummary",
    "DeviceListResponse",
    "RoleLookupRequest",
    "RoleLookupResponse",
    "HealthResponse",
]
