"""
Metrics collection for sync runs.

SyncMetrics tracks one sync execution:
- Size of the fetched feed and of the normalized corpus
- Batches written during the replace
- Source health and errors

Serialized with to_dict() into the sync_runs.metadata column.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class SyncMetrics:
    """Metrics for a single sync run."""
    run_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None

    # Feed and corpus sizes
    feed_packages: int = 0
    records_total: int = 0
    packages_total: int = 0
    releases_total: int = 0

    # Replace progress
    batch_size: int = 0
    batches_written: int = 0
    records_written: int = 0

    errors: int = 0
    source_health: Dict[str, Dict] = field(default_factory=dict)
    quality_issues: List[Dict] = field(default_factory=list)

    # Release counts keyed by status, taken from the normalized records
    status_counts: Dict[str, int] = field(default_factory=dict)

    def record_corpus(self, records) -> None:
        """
        Count records, packages, releases and statuses of a normalized corpus.

        Args:
            records: Iterable of VulnerabilityRecord
        """
        self.records_total = 0
        self.packages_total = 0
        self.releases_total = 0
        self.status_counts = {}

        for record in records:
            self.records_total += 1
            for package in record.packages:
                self.packages_total += 1
                for release in package.releases:
                    self.releases_total += 1
                    self.status_counts[release.status] = self.status_counts.get(release.status, 0) + 1

    def record_batch(self, count: int):
        """Record one inserted batch of count records."""
        self.batches_written += 1
        self.records_written += count

    def record_error(self, error: str, context: Dict = None):
        """
        Record an error encountered during the run.

        Args:
            error: Error message
            context: Optional dict with additional context (e.g., phase)
        """
        self.errors += 1
        self.quality_issues.append({
            "type": "error",
            "message": error,
            "context": context or {}
        })

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for JSON serialization."""
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "feed_packages": self.feed_packages,
            "records_total": self.records_total,
            "packages_total": self.packages_total,
            "releases_total": self.releases_total,
            "batch_size": self.batch_size,
            "batches_written": self.batches_written,
            "records_written": self.records_written,
            "errors": self.errors,
            "status_counts": dict(self.status_counts),
            "source_health": self.source_health,
            "quality_issues": self.quality_issues
        }
