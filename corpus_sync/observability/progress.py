"""
Progress sinks notified while the corpus is being replaced.

The store calls start() once with the number of records, advance() after
every inserted batch and finish() once the transaction has committed.
Sinks are purely observational: they never influence the outcome of a
replace.
"""
from typing import Optional

from tqdm import tqdm


class ProgressSink:
    """Base sink. Ignores every notification."""

    def start(self, total: int):
        pass

    def advance(self, count: int):
        pass

    def finish(self):
        pass


class TqdmProgress(ProgressSink):
    """Renders batch progress as a tqdm bar on stderr."""

    def __init__(self, desc: str = "Inserting records", disable: bool = False):
        self.desc = desc
        self.disable = disable
        self._bar: Optional[tqdm] = None

    def start(self, total: int):
        self._bar = tqdm(total=total, desc=self.desc, unit="rec", disable=self.disable)

    def advance(self, count: int):
        if self._bar is not None:
            self._bar.update(count)

    def finish(self):
        if self._bar is not None:
            self._bar.close()
            self._bar = None


class MetricsProgress(ProgressSink):
    """Counts batches into SyncMetrics and forwards to another sink."""

    def __init__(self, metrics, inner: Optional[ProgressSink] = None):
        self.metrics = metrics
        self.inner = inner or ProgressSink()

    def start(self, total: int):
        self.inner.start(total)

    def advance(self, count: int):
        self.metrics.record_batch(count)
        self.inner.advance(count)

    def finish(self):
        self.inner.finish()
