"""Device registration schemas."""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..models.device_registration import DeviceRole


class DeviceRegisterRequest(BaseModel):
    """Request to register a device for push notifications."""
    token: Optional[str] = None
    # Odoo user id; older clients send their employee id instead
    recipient_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("userId", "recipientId", "user_id", "recipient_id"),
    )
    role: DeviceRole = DeviceRole.EMPLOYEE

    @field_validator("recipient_id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Union[str, int, None]) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)


class DeviceRegisterResponse(BaseModel):
    """Response after registering a device."""
    success: bool
    devices_count: int = Field(serialization_alias="devicesCount")


class DeviceUnregisterRequest(BaseModel):
    token: Optional[str] = None


class DeviceUnregisterResponse(BaseModel):
    success: bool


class DeviceSummary(BaseModel):
    """Redacted view of a registration (diagnostic only)."""
    user_id: Optional[str] = Field(serialization_alias="userId")
    role: str
    registered_at: Optional[datetime] = Field(serialization_alias="registeredAt")
    token_preview: str = Field(serialization_alias="tokenPreview")


class DeviceListResponse(BaseModel):
    count: int
    devices: List[DeviceSummary]
