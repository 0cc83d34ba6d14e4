"""Health check schema."""
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    service: str
    registered_devices: int = Field(serialization_alias="registeredDevices")
    last_check: str = Field(serialization_alias="lastCheck")
