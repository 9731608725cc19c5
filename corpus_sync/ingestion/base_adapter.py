"""
Base adapter interface for feed sources.

Defines the contract every feed adapter implements and the health record
the orchestrator reports on.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class SourceHealth:
    """Health status of a source adapter."""
    source_id: str
    is_healthy: bool
    last_fetch: Optional[datetime]
    records_fetched: int
    error_message: Optional[str] = None


class FeedFormatError(ValueError):
    """Raised when a fetched feed does not have the expected shape."""


class BaseAdapter(ABC):
    """
    Abstract base class for feed adapters.

    Adapters return the raw feed document. Failures are recorded for the
    health report and then re-raised: an empty feed must never be passed
    on, since the sync would replace the corpus with it.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.source_id: str = ""
        self._last_fetch: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._records_fetched: int = 0

    @abstractmethod
    def fetch(self) -> Dict[str, Any]:
        """
        Fetch the complete feed snapshot.

        Returns:
            Raw feed document
        """
        pass

    def get_health(self) -> SourceHealth:
        """Return health status of this adapter."""
        return SourceHealth(
            source_id=self.source_id,
            is_healthy=self._last_error is None,
            last_fetch=self._last_fetch,
            records_fetched=self._records_fetched,
            error_message=self._last_error
        )
