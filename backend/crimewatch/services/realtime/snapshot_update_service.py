"""Pushes each new incident snapshot to WebSocket clients."""

import asyncio
import logging
from typing import Optional

from crimewatch.core.config import get_settings
from crimewatch.schemas.incident import IncidentBatch
from crimewatch.services.analytics.clustering import cluster_incidents
from crimewatch.services.realtime.poller import IncidentPoller, get_incident_poller
from crimewatch.services.realtime.websocket_manager import (
    WebSocketManager,
    get_websocket_manager,
)

logger = logging.getLogger(__name__)


def snapshot_payload(batch: IncidentBatch, threshold_deg: Optional[float] = None) -> dict:
    """
    Summarize a batch for map clients.

    Args:
        batch: Incident batch
        threshold_deg: Cluster threshold (defaults to config value)

    Returns:
        JSON-serializable snapshot summary with hotspot clusters
    """
    clusters = cluster_incidents(batch.incidents, threshold_deg)
    return {
        "version": batch.version,
        "source": batch.source,
        "fetched_at": batch.fetched_at.isoformat() if batch.fetched_at else None,
        "incident_count": len(batch),
        "spatial_incident_count": sum(1 for i in batch.incidents if i.is_spatial),
        "clusters": [c.model_dump() for c in clusters],
    }


class SnapshotUpdateService:
    """Subscribes to the poller and broadcasts every update."""

    def __init__(
        self,
        poller: Optional[IncidentPoller] = None,
        websocket_manager: Optional[WebSocketManager] = None,
    ):
        self.poller = poller or get_incident_poller()
        self.websocket_manager = websocket_manager or get_websocket_manager()
        self._task: Optional[asyncio.Task] = None

    async def _run(self):
        subscription = self.poller.subscribe()
        try:
            while True:
                update = await subscription.get()
                if not get_settings().realtime_enabled:
                    continue
                try:
                    await self.websocket_manager.broadcast_snapshot(
                        snapshot_payload(update.batch)
                    )
                    await self.websocket_manager.broadcast_new_incidents(
                        update.new_incidents
                    )
                except Exception as e:
                    logger.error(f"Error broadcasting incident snapshot: {str(e)}", exc_info=True)
        finally:
            subscription.close()

    def start(self):
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


# Singleton instance
_service: Optional[SnapshotUpdateService] = None


def get_snapshot_update_service() -> SnapshotUpdateService:
    """
    Get the singleton snapshot update service instance.

    Returns:
        SnapshotUpdateService instance
    """
    global _service
    if _service is None:
        _service = SnapshotUpdateService()
    return _service
