"""
Adapter for the Debian security tracker JSON snapshot.

The tracker republishes its whole dataset as one JSON document at
https://security-tracker.debian.org/tracker/data/json, keyed by source
package, then by advisory identifier.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .base_adapter import BaseAdapter, FeedFormatError
from .http_client import HttpClient, RetryConfig

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "https://security-tracker.debian.org/tracker/data/json"


class DebianFeedAdapter(BaseAdapter):
    """
    Loads the tracker snapshot from a local cache or the tracker URL.

    Config keys:
    - url: Feed URL (defaults to the public tracker)
    - cache_path: Local JSON copy, written after every download
    - use_cache: Read cache_path instead of downloading when it exists
    - timeout_seconds, max_retries: HTTP settings
    """

    def __init__(self, config: Dict[str, Any], client: Optional[HttpClient] = None):
        super().__init__(config)
        self.source_id = "debian_tracker"
        self.url = config.get("url") or DEFAULT_FEED_URL
        cache_path = config.get("cache_path")
        self.cache_path = Path(cache_path) if cache_path else None
        self.use_cache = bool(config.get("use_cache", False))
        self.client = client or HttpClient(
            self.source_id,
            RetryConfig(
                max_retries=int(config.get("max_retries", 3)),
                timeout_seconds=float(config.get("timeout_seconds", 60)),
            ),
        )

    def fetch(self) -> Dict[str, Any]:
        """
        Load the feed and check its top-level shape.

        Raises:
            FeedFormatError: If the document is not package -> advisories
            requests.RequestException, OSError: If loading fails
        """
        self._last_fetch = datetime.utcnow()

        try:
            feed = self._load_data()
            self._validate(feed)
        except Exception as e:
            self._last_error = f"{type(e).__name__}: {e}"
            self._records_fetched = 0
            logger.error(f"Debian feed adapter failed: {self._last_error}")
            raise

        self._records_fetched = len(feed)
        self._last_error = None
        logger.info(f"Fetched tracker feed with {len(feed)} packages")
        return feed

    def _load_data(self) -> Any:
        if self.use_cache and self.cache_path and self.cache_path.exists():
            logger.info(f"Reading tracker feed from cache {self.cache_path}")
            with open(self.cache_path, "r", encoding="utf-8") as f:
                return json.load(f)

        logger.info(f"Downloading tracker feed from {self.url}")
        data = self.client.get_json(self.url)

        if self.cache_path:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_path, "w", encoding="utf-8") as f:
                json.dump(data, f)

        return data

    def _validate(self, feed: Any):
        if not isinstance(feed, dict):
            raise FeedFormatError(f"Expected a JSON object at top level, got {type(feed).__name__}")
        if not feed:
            raise FeedFormatError("Feed is empty")
