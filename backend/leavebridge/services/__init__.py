"""Services for polling, recipient resolution, and push delivery."""
from .device_registry import DeviceRegistry
from .dispatcher import NotificationDispatcher
from .odoo_client import OdooClient
from .resolver import RecipientResolver
from .scheduler import PollScheduler
from .watermark import WatermarkTracker

__all__ = [
    "DeviceRegistry",
    "NotificationDispatcher",
    "OdooClient",
    "RecipientResolver",
    "PollScheduler",
    "WatermarkTracker",
]
