"""FastAPI dependency providers for the services built in the lifespan."""
from fastapi import Request

from .services.device_registry import DeviceRegistry
from .services.odoo_client import OdooClient
from .services.watermark import WatermarkTracker


def get_registry(request: Request) -> DeviceRegistry:
    return request.app.state.registry


def get_store(request: Request) -> OdooClient:
    return request.app.state.store


def get_tracker(request: Request) -> WatermarkTracker:
    return request.app.state.tracker
