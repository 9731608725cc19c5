"""
Query layer for the Debian corpus.

Components:
- CodenameResolver: Major version -> codename lookup
- QueryEngine: Identifier and fix-status lookups over CorpusStore
"""
from .codenames import DEBIAN_CODENAMES, CodenameResolver, UnsupportedVersionError
from .engine import QueryEngine, has_matching_release

__all__ = [
    "DEBIAN_CODENAMES",
    "CodenameResolver",
    "UnsupportedVersionError",
    "QueryEngine",
    "has_matching_release",
]
