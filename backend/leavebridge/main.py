"""Main FastAPI application - device registration API plus the Odoo poller."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings, validate_settings
from .database import async_session, close_db, init_db
from .dependencies import get_registry, get_tracker
from .routers import devices_router, roles_router
from .schemas.status import HealthResponse
from .services.device_registry import DeviceRegistry
from .services.dispatcher import NotificationDispatcher
from .services.odoo_client import OdooClient
from .services.push_sender import build_gateway
from .services.resolver import RecipientResolver
from .services.scheduler import PollScheduler
from .services.watermark import WatermarkTracker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Missing credentials must stop the process before anything starts
    validate_settings(settings)
    logger.info("Starting Odoo notification bridge")

    await init_db()
    logger.info("Database initialized")

    registry = DeviceRegistry(async_session)
    store = OdooClient(
        settings.odoo_url,
        settings.odoo_db,
        settings.odoo_username,
        settings.odoo_password,
        timeout=settings.request_timeout_seconds,
    )
    gateway = build_gateway(settings)
    tracker = WatermarkTracker()
    poller = PollScheduler(
        store=store,
        registry=registry,
        resolver=RecipientResolver(store, registry, settings.officer_ids),
        dispatcher=NotificationDispatcher(gateway, registry, timeout=settings.dispatch_timeout_seconds),
        tracker=tracker,
        interval_seconds=settings.poll_interval_seconds,
        limit=settings.poll_limit,
        drain_seconds=settings.shutdown_drain_seconds,
    )

    app.state.registry = registry
    app.state.store = store
    app.state.tracker = tracker

    await poller.initialize_all()
    poller.start()

    yield

    # Shutdown: let in-flight dispatches finish before closing clients
    await poller.stop()
    await gateway.close()
    await store.close()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Leave Bridge",
        description="Push notifications for Odoo time-off requests",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(devices_router)
    app.include_router(roles_router)

    @app.get("/", response_model=HealthResponse)
    @app.get("/health", response_model=HealthResponse)
    async def health_check(registry: DeviceRegistry = Depends(get_registry)):
        return HealthResponse(
            status="ok",
            service="leavebridge",
            registered_devices=await registry.count(),
            last_check=datetime.now(timezone.utc).isoformat(),
        )

    @app.get("/watermarks")
    async def watermarks(tracker: WatermarkTracker = Depends(get_tracker)):
        """Per-category polling state (debug)."""
        return tracker.snapshot()

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
