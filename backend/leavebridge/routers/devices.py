"""Device registration API endpoints for push notifications."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_registry
from ..schemas.device import (
    DeviceListResponse,
    DeviceRegisterRequest,
    DeviceRegisterResponse,
    DeviceSummary,
    DeviceUnregisterRequest,
    DeviceUnregisterResponse,
)
from ..services.device_registry import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["devices"])


@router.post("/register_token", response_model=DeviceRegisterResponse)
async def register_device(
    request: DeviceRegisterRequest,
    registry: DeviceRegistry = Depends(get_registry),
):
    """Register a device for push notifications.

    Re-registering a known token updates its recipient and role. The mobile
    app calls this on every launch so the token stays current.
    """
    if not request.token:
        raise HTTPException(status_code=400, detail="Missing token")

    await registry.upsert(request.token, request.recipient_id, request.role)
    count = await registry.count()
    logger.info(f"Registered devices: {count}")

    return DeviceRegisterResponse(success=True, devices_count=count)


@router.post("/unregister_token", response_model=DeviceUnregisterResponse)
async def unregister_device(
    request: DeviceUnregisterRequest,
    registry: DeviceRegistry = Depends(get_registry),
):
    """Unregister a device. Unknown tokens succeed too."""
    if request.token:
        await registry.remove(request.token)
    return DeviceUnregisterResponse(success=True)


@router.get("/devices", response_model=DeviceListResponse)
async def list_devices(registry: DeviceRegistry = Depends(get_registry)):
    """List registered devices with truncated tokens (debug)."""
    devices = await registry.list_devices()
    return DeviceListResponse(
        count=len(devices),
        devices=[
            DeviceSummary(
                user_id=d.recipient_id,
                role=d.role.value,
                registered_at=d.registered_at,
                token_preview=d.token[:20] + "...",
            )
            for d in devices
        ],
    )
