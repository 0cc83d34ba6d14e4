"""Watermark tracking - decides which freshly queried records are new.

Each category keeps two pieces of volatile state:
- the newest ``write_date`` seen so far, used to build the next query filter
- a bounded, insertion-ordered set of recently processed record ids

Odoo serializes ``write_date`` as ``YYYY-MM-DD HH:MM:SS`` (UTC), a fixed-width
format whose lexicographic order matches chronological order, so the values
are compared as strings.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Hashable, Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)

# Maximum number of recently processed ids remembered per category
RECENT_IDS_CAPACITY = 100


class BoundedIdSet:
    """Fixed-capacity set that evicts the oldest inserted id first."""

    def __init__(self, capacity: int = RECENT_IDS_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._items: "OrderedDict[Hashable, None]" = OrderedDict()

    def add(self, item: Hashable) -> None:
        """Insert an id, refreshing its position if already present."""
        if item in self._items:
            self._items.move_to_end(item)
        else:
            self._items[item] = None
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._items)


@dataclass
class PollWatermark:
    """Per-category boundary between notified and new records."""
    last_seen_modified_at: Optional[str] = None
    recently_processed_ids: BoundedIdSet = field(default_factory=BoundedIdSet)
    initialized: bool = False


class WatermarkTracker:
    """Owns the PollWatermark of every monitored category."""

    def __init__(self, capacity: int = RECENT_IDS_CAPACITY):
        self._capacity = capacity
        self._watermarks: Dict[str, PollWatermark] = {}

    def get(self, category: str) -> PollWatermark:
        if category not in self._watermarks:
            self._watermarks[category] = PollWatermark(
                recently_processed_ids=BoundedIdSet(self._capacity),
            )
        return self._watermarks[category]

    def is_initialized(self, category: str) -> bool:
        return self.get(category).initialized

    async def initialize(
        self,
        category: str,
        probe: Callable[[], Awaitable[Optional[str]]],
    ) -> Optional[str]:
        """Seed the watermark from the most recently modified record in scope.

        ``probe`` returns that record's ``write_date`` (or None when the store
        has no record in scope). Store errors propagate and leave the category
        uninitialized, so the next tick probes again.
        """
        newest = await probe()
        watermark = self.get(category)
        watermark.last_seen_modified_at = newest or None
        watermark.initialized = True
        logger.info(f"Watermark for {category} initialized at {watermark.last_seen_modified_at}")
        return watermark.last_seen_modified_at

    def domain_for(self, category: str, base_domain: List) -> List:
        """Incremental filter: the category's domain plus the watermark bound."""
        last_seen = self.get(category).last_seen_modified_at
        if last_seen is None:
            return list(base_domain)
        return list(base_domain) + [["write_date", ">", last_seen]]

    def admit(self, category: str, records: Iterable[dict]) -> List[dict]:
        """Return the records that are genuinely new and remember their ids.

        A record is new when its id is not in the recently processed set and
        its ``write_date`` is past the watermark. Input order is preserved.
        """
        watermark = self.get(category)
        last_seen = watermark.last_seen_modified_at
        admitted = []

        for record in records:
            record_id = record.get("id")
            if record_id in watermark.recently_processed_ids:
                continue
            modified_at = record.get("write_date") or None
            if last_seen is not None and modified_at is not None and modified_at <= last_seen:
                continue
            admitted.append(record)

        for record in admitted:
            watermark.recently_processed_ids.add(record.get("id"))

        return admitted

    def advance(self, category: str, newest_modified_at: Optional[str]) -> None:
        """Move the watermark forward. Older or empty values are ignored."""
        if not newest_modified_at:
            return
        watermark = self.get(category)
        if watermark.last_seen_modified_at is None or newest_modified_at > watermark.last_seen_modified_at:
            watermark.last_seen_modified_at = newest_modified_at

    def snapshot(self) -> Dict[str, dict]:
        """Diagnostic view of every category's watermark."""
        return {
            category: {
                "initialized": wm.initialized,
                "lastSeenModifiedAt": wm.last_seen_modified_at,
                "recentlyProcessedCount": len(wm.recently_processed_ids),
            }
            for category, wm in self._watermarks.items()
        }
