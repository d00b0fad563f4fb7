from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"

    cors_origins: List[str] = ["http://localhost:8081", "http://localhost:19006"]

    # Incident feed
    feed_url: str = "https://api-2-2-88x4.onrender.com/crimes"
    feed_timeout_seconds: float = 15.0
    feed_max_retries: int = 3
    feed_retry_backoff: float = 1.0

    # Polling: one shared task for every consumer
    polling_enabled: bool = True
    poll_interval_seconds: float = 10.0

    # Hotspot clustering
    cluster_threshold_deg: float = 0.01  # ~1.1 km at the equator

    # Last good batch kept in Redis so a restart starts from stale-but-valid data
    redis_url: str = "redis://localhost:6379/0"
    snapshot_cache_enabled: bool = True
    snapshot_cache_ttl_seconds: int = 86400

    # Real-time updates settings
    realtime_enabled: bool = True
    websocket_heartbeat_interval: int = 30  # Heartbeat interval in seconds

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
