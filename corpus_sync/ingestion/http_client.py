"""
HTTP client used to download the tracker snapshot.

Retries connection errors and transient status codes with exponential
backoff. Retrying lives here, at the fetch boundary; the storage layer
never retries.
"""
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    jitter_ratio: float = 0.3
    timeout_seconds: float = 60.0


class HttpClient:
    """requests.Session wrapper with retries and backoff."""

    def __init__(self, source_id: str, retry_config: Optional[RetryConfig] = None):
        self.source_id = source_id
        self.session = requests.Session()
        self.retry_config = retry_config or RetryConfig()

    def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """GET url and decode the JSON body."""
        response = self._get(url, headers=headers)
        return response.json()

    def _get(self, url: str, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        retries = self.retry_config.max_retries

        for attempt in range(retries + 1):
            try:
                response = self.session.get(
                    url,
                    headers=headers,
                    timeout=self.retry_config.timeout_seconds,
                )
            except requests.RequestException as exc:
                if attempt < retries:
                    logger.warning(f"{self.source_id}: request failed ({exc}), retrying")
                    self._sleep_with_backoff(attempt)
                    continue
                raise

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < retries:
                logger.warning(f"{self.source_id}: HTTP {response.status_code}, retrying")
                self._sleep_with_backoff(attempt)
                continue

            response.raise_for_status()
            return response

        # Loop always returns or raises on its last attempt.
        raise RuntimeError(f"{self.source_id}: request to {url} failed")

    def _sleep_with_backoff(self, attempt: int) -> None:
        base = min(
            self.retry_config.max_delay_seconds,
            self.retry_config.base_delay_seconds * (2 ** attempt),
        )
        time.sleep(base + base * random.uniform(0, self.retry_config.jitter_ratio))
