"""
Ingestion layer for the Debian corpus sync.

Provides the tracker feed adapter and the normalizer turning the
package-keyed feed into identifier-keyed corpus records.
"""
from .base_adapter import BaseAdapter, FeedFormatError, SourceHealth
from .debian_feed_adapter import DEFAULT_FEED_URL, DebianFeedAdapter
from .normalizer import build_releases, convert_feed, merge_package

__all__ = [
    "BaseAdapter",
    "FeedFormatError",
    "SourceHealth",
    "DEFAULT_FEED_URL",
    "DebianFeedAdapter",
    "build_releases",
    "convert_feed",
    "merge_package",
]
