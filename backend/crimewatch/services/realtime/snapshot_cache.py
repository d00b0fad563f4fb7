"""Redis copy of the last good incident batch."""

import json
import logging
from datetime import datetime
from typing import List, Optional, Tuple

import redis
from crimewatch.core.config import get_settings
from crimewatch.schemas.incident import Incident, IncidentBatch

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "incidents:snapshot"


class SnapshotCache:
    """Keeps the last successfully ingested batch in Redis."""

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        """
        Initialize the snapshot cache.

        Args:
            redis_client: Optional Redis client (creates new if not provided)
        """
        settings = get_settings()
        self.redis_client = redis_client
        self.ttl_seconds = settings.snapshot_cache_ttl_seconds
        self._cache_enabled = settings.snapshot_cache_enabled

        if self._cache_enabled and self.redis_client is None:
            try:
                self.redis_client = redis.from_url(
                    settings.redis_url,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                )
                # Test connection
                self.redis_client.ping()
                logger.info("Redis snapshot cache initialized successfully")
            except Exception as e:
                logger.warning(f"Redis snapshot cache initialization failed: {str(e)}")
                logger.warning("Continuing without cache (graceful degradation)")
                self._cache_enabled = False
                self.redis_client = None

    def save(self, batch: IncidentBatch):
        """
        Store a batch, replacing the previous one.

        Args:
            batch: Batch to persist
        """
        if not self.is_enabled():
            return

        try:
            payload = {
                "fetched_at": batch.fetched_at.isoformat() if batch.fetched_at else None,
                "incidents": [i.model_dump(mode="json") for i in batch.incidents],
            }
            self.redis_client.setex(SNAPSHOT_KEY, self.ttl_seconds, json.dumps(payload))
            logger.debug(f"Cached snapshot v{batch.version} ({len(batch)} incidents)")
        except Exception as e:
            logger.error(f"Error caching incident snapshot: {str(e)}")

    def load(self) -> Optional[Tuple[List[Incident], Optional[datetime]]]:
        """
        Read the cached batch.

        Returns:
            (incidents, fetched_at) or None if nothing usable is cached
        """
        if not self.is_enabled():
            return None

        try:
            cached = self.redis_client.get(SNAPSHOT_KEY)
            if not cached:
                logger.debug("No cached incident snapshot")
                return None
            payload = json.loads(cached)
            incidents = [Incident.model_validate(item) for item in payload["incidents"]]
            fetched_at = payload.get("fetched_at")
            return incidents, datetime.fromisoformat(fetched_at) if fetched_at else None
        except Exception as e:
            logger.error(f"Error loading cached incident snapshot: {str(e)}")
            return None

    def is_enabled(self) -> bool:
        """
        Check if cache is enabled and available.

        Returns:
            True if cache is enabled and available
        """
        return self._cache_enabled and self.redis_client is not None


# Singleton instance
_cache: Optional[SnapshotCache] = None


def get_snapshot_cache() -> SnapshotCache:
    """
    Get the singleton snapshot cache instance.

    Returns:
        SnapshotCache instance
    """
    global _cache
    if _cache is None:
        _cache = SnapshotCache()
    return _cache
