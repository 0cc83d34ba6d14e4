"""API routers."""
from .devices import router as devices_router
from .roles import router as roles_router

__all__ = ["devices_router", "roles_router"]
