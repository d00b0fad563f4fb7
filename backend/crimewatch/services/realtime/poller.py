"""Shared incident feed poller.

One asyncio task fetches the feed, replaces the incident snapshot and hands
the new batch to every subscriber. Each cycle finishes before the next sleep
starts, so fetches never overlap.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Set

from crimewatch.core.config import get_settings
from crimewatch.core.errors import FeedError
from crimewatch.schemas.incident import Incident, IncidentBatch
from crimewatch.services.analytics.alerts import new_incidents
from crimewatch.services.ingest.feed_client import FeedClient
from crimewatch.services.ingest.incident_store import IncidentStore, get_incident_store
from crimewatch.services.realtime.snapshot_cache import SnapshotCache, get_snapshot_cache

logger = logging.getLogger(__name__)


@dataclass
class SnapshotUpdate:
    batch: IncidentBatch
    new_incidents: List[Incident] = field(default_factory=list)


class Subscription:
    """A consumer's view of the poller; only the latest update is kept."""

    def __init__(self, poller: "IncidentPoller"):
        self._poller = poller
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self.closed = False

    def deliver(self, update: SnapshotUpdate):
        if self.closed:
            return
        if self._queue.full():
            # Drop the stale update; subscribers only care about the latest
            self._queue.get_nowait()
        self._queue.put_nowait(update)

    async def get(self) -> SnapshotUpdate:
        return await self._queue.get()

    def close(self):
        self.closed = True
        self._poller.unsubscribe(self)


class IncidentPoller:
    """Polls the incident feed and fans snapshots out to subscribers."""

    def __init__(
        self,
        store: Optional[IncidentStore] = None,
        feed_client: Optional[FeedClient] = None,
        snapshot_cache: Optional[SnapshotCache] = None,
        interval_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.store = store or get_incident_store()
        self.feed_client = feed_client or FeedClient()
        self.snapshot_cache = snapshot_cache or get_snapshot_cache()
        self.interval_seconds = interval_seconds or settings.poll_interval_seconds

        self._subscribers: Set[Subscription] = set()
        self._task: Optional[asyncio.Task] = None
        self._poll_lock = asyncio.Lock()

        self.last_success_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.consecutive_failures = 0

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscribers.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        self._subscribers.discard(subscription)

    def _publish(self, update: SnapshotUpdate):
        for subscription in list(self._subscribers):
            subscription.deliver(update)

    def warm_from_cache(self) -> bool:
        """
        Seed an empty store with the cached batch.

        Returns:
            True if a cached batch was loaded
        """
        if self.store.snapshot.version > 0:
            return False
        return self._apply_cached(self.snapshot_cache.load())

    def _apply_cached(self, cached) -> bool:
        # Runs on the event loop: replaces the snapshot and feeds subscriber queues
        if cached is None or self.store.snapshot.version > 0:
            return False
        incidents, fetched_at = cached
        batch = self.store.replace(incidents, fetched_at=fetched_at, source="cache")
        logger.info(f"Loaded {len(batch)} cached incidents (fetched at {fetched_at})")
        self._publish(SnapshotUpdate(batch=batch))
        return True

    async def poll_once(self) -> IncidentBatch:
        """
        Fetch, ingest and publish one batch.

        On failure the current snapshot is left untouched.

        Returns:
            The new batch

        Raises:
            FeedError: If the feed could not be fetched or decoded
        """
        async with self._poll_lock:
            try:
                records = await asyncio.to_thread(self.feed_client.fetch)
                now = datetime.now(timezone.utc)
                incidents = self.store.ingest(records, ingested_at=now)
            except FeedError as e:
                self.last_error = str(e)
                self.consecutive_failures += 1
                logger.error(
                    f"Incident poll failed ({self.consecutive_failures} in a row), "
                    f"keeping snapshot v{self.store.snapshot.version}: {str(e)}"
                )
                raise

            previous = self.store.snapshot
            batch = self.store.replace(incidents, fetched_at=now, source="feed")
            self.last_success_at = now
            self.last_error = None
            self.consecutive_failures = 0

            update = SnapshotUpdate(
                batch=batch,
                new_incidents=new_incidents(previous.incidents, batch.incidents),
            )
            self._publish(update)
            logger.info(
                f"Polled {len(records)} records -> {len(batch)} incidents "
                f"(v{batch.version}, {len(update.new_incidents)} new)"
            )

            # Subscribers hold the batch before the save, so a cancel here loses nothing
            await asyncio.to_thread(self.snapshot_cache.save, batch)
            return batch

    async def _run(self):
        try:
            if self.store.snapshot.version == 0:
                self._apply_cached(await asyncio.to_thread(self.snapshot_cache.load))
        except Exception as e:
            logger.error(f"Could not warm incident snapshot from cache: {str(e)}", exc_info=True)
        while True:
            try:
                await self.poll_once()
            except FeedError:
                pass  # logged in poll_once; stale snapshot stays in place
            except Exception as e:
                logger.error(f"Unexpected error while polling incidents: {str(e)}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)

    def start(self):
        if self.is_running():
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Incident poller started (every {self.interval_seconds}s)")

    async def stop(self):
        """Cancel the polling task; a fetch in flight is discarded."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Incident poller stopped")

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> dict:
        batch = self.store.snapshot
        return {
            "running": self.is_running(),
            "interval_seconds": self.interval_seconds,
            "snapshot_version": batch.version,
            "snapshot_source": batch.source,
            "incident_count": len(batch),
            "fetched_at": batch.fetched_at.isoformat() if batch.fetched_at else None,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error,
            "consecutive_failures": self.consecutive_failures,
            "subscribers": len(self._subscribers),
        }


# Singleton instance
_poller: Optional[IncidentPoller] = None


def get_incident_poller() -> IncidentPoller:
    """
    Get the singleton incident poller instance.

    Returns:
        IncidentPoller instance
    """
    global _poller
    if _poller is None:
        _poller = IncidentPoller()
    return _poller
