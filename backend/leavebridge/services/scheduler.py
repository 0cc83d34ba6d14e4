"""Poll scheduler - watches Odoo for new transitions and fans them out.

Design:
- One interval job per category, so a slow category never delays another
- A category's tick never overlaps its predecessor: APScheduler runs at most
  one instance per job, and a per-category lock makes a tick that still finds
  its predecessor running return immediately instead of queueing
- Store failures abort only the affected category for the current tick; the
  watermark stays where it was and the next tick retries
- Shutdown stops scheduling new ticks and waits for in-flight ones to drain
"""
import asyncio
import logging
from typing import Dict, Iterable, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..errors import AuthenticationError, RecipientResolutionGap, RecordStoreError, TransientStoreError
from .categories import CATEGORIES, Category
from .device_registry import DeviceRegistry
from .dispatcher import DeliveryOutcome, NotificationDispatcher
from .odoo_client import OdooClient
from .resolver import RecipientResolver
from .watermark import WatermarkTracker

logger = logging.getLogger(__name__)

# Poll interval in seconds
DEFAULT_POLL_INTERVAL_SECONDS = 30

# Rows fetched per category per tick
DEFAULT_POLL_LIMIT = 20


class PollScheduler:
    """Runs the poll-and-dispatch cycle for every category."""

    def __init__(
        self,
        store: OdooClient,
        registry: DeviceRegistry,
        resolver: RecipientResolver,
        dispatcher: NotificationDispatcher,
        tracker: Optional[WatermarkTracker] = None,
        categories: Iterable[Category] = CATEGORIES,
        interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
        limit: int = DEFAULT_POLL_LIMIT,
        drain_seconds: float = 30.0,
    ):
        self.store = store
        self.registry = registry
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.tracker = tracker or WatermarkTracker()
        self.categories: Dict[str, Category] = {c.key: c for c in categories}
        self.interval_seconds = interval_seconds
        self.limit = limit
        self.drain_seconds = drain_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self._locks: Dict[str, asyncio.Lock] = {key: asyncio.Lock() for key in self.categories}
        self._inflight: Set[asyncio.Task] = set()

    def start(self):
        """Start one interval job per category."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()
        for key in self.categories:
            self.scheduler.add_job(
                self._scheduled_tick,
                trigger=IntervalTrigger(seconds=self.interval_seconds),
                args=[key],
                id=f"poll_{key}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=self.interval_seconds,
            )

        self.scheduler.start()
        self._running = True
        logger.info(f"Poll scheduler started (interval={self.interval_seconds}s, categories={len(self.categories)})")

    async def stop(self):
        """Stop scheduling and wait for in-flight ticks to finish."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False

        pending = {t for t in self._inflight if not t.done()}
        if pending:
            logger.info(f"Waiting for {len(pending)} in-flight poll cycle(s) to finish")
            done, still_pending = await asyncio.wait(pending, timeout=self.drain_seconds)
            if still_pending:
                logger.warning(f"{len(still_pending)} poll cycle(s) still running after {self.drain_seconds}s drain")
        logger.info("Poll scheduler stopped")

    async def initialize_all(self):
        """Seed every category's watermark at startup.

        A category whose probe fails stays uninitialized and is seeded by its
        first tick instead.
        """
        for key, category in self.categories.items():
            try:
                await self._initialize(category)
            except RecordStoreError as e:
                logger.error(f"Could not initialize {key} watermark, retrying on first tick: {e}")

    async def _scheduled_tick(self, key: str):
        task = asyncio.current_task()
        if task is not None:
            self._inflight.add(task)
        try:
            await self.run_category(key)
        finally:
            if task is not None:
                self._inflight.discard(task)

    async def run_category(self, key: str) -> int:
        """Run one tick for a category.

        Returns:
            Number of records admitted as new this tick
        """
        lock = self._locks[key]
        if lock.locked():
            logger.warning(f"Previous {key} cycle still running, skipping tick")
            return 0

        async with lock:
            try:
                if await self.registry.count() == 0:
                    logger.debug(f"No registered devices, skipping {key} poll")
                    return 0
                return await self._poll(self.categories[key])
            except AuthenticationError as e:
                logger.error(f"Odoo authentication failed, {key} poll aborted: {e}")
            except TransientStoreError as e:
                logger.error(f"Odoo query failed, {key} poll aborted: {e}")
            except Exception as e:
                logger.exception(f"Unexpected error polling {key}: {e}")
            return 0

    async def _initialize(self, category: Category):
        async def probe():
            rows = await self.store.query(
                category.collection,
                category.domain,
                ["id", "write_date"],
                order="write_date desc",
                limit=1,
            )
            return rows[0].get("write_date") if rows else None

        await self.tracker.initialize(category.key, probe)

    async def _poll(self, category: Category) -> int:
        """Query, filter, resolve, and dispatch for one category."""
        await self.store.authenticate()

        if not self.tracker.is_initialized(category.key):
            # Records that existed before startup are never notified
            await self._initialize(category)
            return 0

        records = await self.store.query(
            category.collection,
            self.tracker.domain_for(category.key, category.domain),
            category.fields,
            order="write_date desc",
            limit=self.limit,
        )
        newest = max((r.get("write_date") or "" for r in records), default="")

        new_records = self.tracker.admit(category.key, records)
        if new_records:
            logger.info(f"{len(new_records)} new {category.key} record(s) detected")

        # Admitted ids are already recorded, so one bad record must not
        # cost the others their notification
        for record in new_records:
            try:
                await self._notify(category, record)
            except Exception as e:
                logger.exception(f"Failed to notify {category.key} record {record.get('id')}: {e}")

        self.tracker.advance(category.key, newest or None)
        return len(new_records)

    async def _notify(self, category: Category, record: dict):
        notification = category.render(record)
        try:
            notification.recipients = await self.resolver.resolve(category, record)
        except RecipientResolutionGap as e:
            logger.warning(f"Dropping {category.key} record {record.get('id')}: {e}")
            return
        except RecordStoreError as e:
            logger.error(f"Recipient lookup failed for {category.key} record {record.get('id')}: {e}")
            return

        delivered = 0
        for token in sorted(notification.recipients):
            outcome = await self.dispatcher.dispatch(
                token,
                notification.title,
                notification.body,
                notification.payload,
            )
            if outcome is DeliveryOutcome.DELIVERED:
                delivered += 1

        logger.info(
            f"{category.key} record {record.get('id')}: "
            f"{delivered}/{len(notification.recipients)} notification(s) delivered"
        )
