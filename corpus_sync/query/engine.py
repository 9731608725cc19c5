"""
Query engine over the corpus store.

Identifier lookups pass straight through to the store. The fix-status
lookup runs in two phases:

1. Candidate scan: every record with any package row named package_name
2. Filtered hydration: each candidate loaded with only that package and
   only releases matching codename + status

A candidate whose filtered tree has no release left is dropped. Without
this check the coarse scan would leak records that list the package but
have nothing under the requested codename or status.
"""
import logging
from typing import Dict, Iterable, Optional

from storage.corpus_store import CorpusStore
from storage.models import STATUS_OPEN, STATUS_RESOLVED, VulnerabilityRecord
from .codenames import CodenameResolver

logger = logging.getLogger(__name__)


def has_matching_release(record: VulnerabilityRecord) -> bool:
    """True if at least one package of the record kept at least one release."""
    return any(package.releases for package in record.packages)


class QueryEngine:
    """Answers identifier and fix-status queries against the corpus."""

    def __init__(self, store: CorpusStore, resolver: Optional[CodenameResolver] = None):
        self.store = store
        self.resolver = resolver or CodenameResolver()

    def get_by_id(self, cve_id: str) -> Optional[VulnerabilityRecord]:
        return self.store.get_by_id(cve_id)

    def get_many_by_id(self, cve_ids: Iterable[str]) -> Dict[str, VulnerabilityRecord]:
        return self.store.get_many_by_id(cve_ids)

    def get_by_fix_status(
        self,
        major: str,
        package_name: str,
        status: str
    ) -> Dict[str, VulnerabilityRecord]:
        """
        Find records for a package with a release in the given status.

        Args:
            major: Debian major version (e.g. "12")
            package_name: Source package name
            status: Release status to match (e.g. "open", "resolved")

        Returns:
            Mapping of cve_id to record, filtered to the matching
            package and releases

        Raises:
            UnsupportedVersionError: If major has no codename
            StorageError: If any read fails
        """
        codename = self.resolver.resolve(major)

        matches = {}
        candidates = self.store.scan_candidates(package_name)
        for record_id in candidates:
            record = self.store.hydrate_filtered(record_id, package_name, codename, status)
            if has_matching_release(record):
                matches[record.cve_id] = record

        logger.debug(
            f"{package_name} on {codename} ({status}): "
            f"{len(matches)} of {len(candidates)} candidates matched"
        )
        return matches

    def get_unfixed(self, major: str, package_name: str) -> Dict[str, VulnerabilityRecord]:
        """Records whose release for this Debian version is still open."""
        return self.get_by_fix_status(major, package_name, STATUS_OPEN)

    def get_fixed(self, major: str, package_name: str) -> Dict[str, VulnerabilityRecord]:
        """Records whose release for this Debian version is resolved."""
        return self.get_by_fix_status(major, package_name, STATUS_RESOLVED)
