"""HTTP client for the incident feed."""

import logging
from typing import Any, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from crimewatch.core.config import get_settings
from crimewatch.core.errors import FeedError

logger = logging.getLogger(__name__)


class FeedClient:
    """Client for the incident feed endpoint."""

    def __init__(
        self,
        feed_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the feed client.

        Args:
            feed_url: Feed endpoint URL (defaults to config value)
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            retry_backoff: Backoff factor between retries in seconds
            session: Optional pre-configured session (tests inject a mock)
        """
        settings = get_settings()
        self.feed_url = feed_url or settings.feed_url
        self.timeout = timeout or settings.feed_timeout_seconds
        self.max_retries = settings.feed_max_retries if max_retries is None else max_retries
        self.retry_backoff = settings.feed_retry_backoff if retry_backoff is None else retry_backoff

        if session is None:
            # Configure session with retry strategy
            session = requests.Session()
            retry_strategy = Retry(
                total=self.max_retries,
                backoff_factor=self.retry_backoff,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    def fetch(self) -> List[Any]:
        """
        Fetch the full incident list.

        Returns:
            Decoded JSON array of raw incident records

        Raises:
            FeedError: If the feed is unreachable, answers with an error status,
                or does not return a JSON array
        """
        try:
            response = self.session.get(
                self.feed_url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FeedError(f"Incident feed request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FeedError(f"Incident feed returned malformed JSON: {e}") from e

        if not isinstance(payload, list):
            raise FeedError(
                f"Incident feed returned {type(payload).__name__}, expected a list"
            )

        logger.debug(f"Fetched {len(payload)} records from {self.feed_url}")
        return payload

    def close(self):
        self.session.close()
