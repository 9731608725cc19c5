"""
Observability layer for the corpus sync.

Main exports:
- SyncMetrics: Tracks metrics for a sync run
- CorpusQualityChecker: Runs integrity checks on the corpus tables
- QualityCheckResult: Result of a quality check
- SyncReporter: Generates Markdown reports
- ProgressSink, TqdmProgress, MetricsProgress: Batch progress notifications
"""
from .metrics import SyncMetrics
from .progress import MetricsProgress, ProgressSink, TqdmProgress
from .quality_checks import CorpusQualityChecker, QualityCheckResult
from .reporter import SyncReporter

__all__ = [
    "SyncMetrics",
    "ProgressSink",
    "TqdmProgress",
    "MetricsProgress",
    "CorpusQualityChecker",
    "QualityCheckResult",
    "SyncReporter",
]
