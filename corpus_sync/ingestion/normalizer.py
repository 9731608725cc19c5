"""
Normalize the Debian security-tracker feed into corpus records.

The tracker publishes its data keyed by package first:

    {
        "openssl": {
            "CVE-2024-0001": {
                "scope": "remote",
                "description": "...",
                "releases": {
                    "bullseye": {
                        "status": "resolved",
                        "repositories": {"bullseye": "1.1.1w-0+deb11u1"},
                        "fixed_version": "1.1.1w-0+deb11u1",
                        "urgency": "not yet assigned"
                    }
                }
            }
        }
    }

The corpus is keyed by identifier, so the same CVE listed under several
packages has to be merged into one record owning one Package per listing.

Design decisions:
- Explicit dict keyed by cve_id, merged in a separate step
- Package names and release names are visited in sorted order and the
  result is sorted by cve_id, so output never depends on feed ordering
- The first package listing an identifier (by name) supplies scope and
  description
"""
import logging
from typing import Any, Dict, List, Mapping

from storage.models import Package, Release, VulnerabilityRecord

logger = logging.getLogger(__name__)


def build_releases(advisory: Mapping[str, Any]) -> List[Release]:
    """
    Build one Release per release name listed in an advisory.

    The source version is looked up in the advisory's "repositories"
    map under the same release name; missing values become "".
    """
    releases = []
    release_map = advisory.get("releases") or {}
    if not isinstance(release_map, Mapping):
        logger.warning("Ignoring releases: expected a mapping of release names")
        return releases

    for release_name in sorted(release_map):
        detail = release_map[release_name] or {}
        if not isinstance(detail, Mapping):
            logger.warning(f"Skipping release {release_name}: detail is not a mapping")
            continue
        repositories = detail.get("repositories") or {}
        if not isinstance(repositories, Mapping):
            repositories = {}
        releases.append(Release(
            product_name=release_name,
            status=detail.get("status") or "",
            fixed_version=detail.get("fixed_version") or "",
            urgency=detail.get("urgency") or "",
            version=repositories.get(release_name) or "",
        ))

    return releases


def merge_package(
    records: Dict[str, VulnerabilityRecord],
    cve_id: str,
    advisory: Mapping[str, Any],
    package: Package
) -> VulnerabilityRecord:
    """
    Attach a package to the record for cve_id, creating it if needed.

    Args:
        records: Working mapping keyed by identifier (mutated)
        cve_id: Advisory identifier
        advisory: Raw advisory the package came from
        package: Package built from that advisory

    Returns:
        The record now owning the package
    """
    record = records.get(cve_id)
    if record is None:
        record = VulnerabilityRecord(
            cve_id=cve_id,
            scope=advisory.get("scope") or "",
            description=advisory.get("description") or "",
        )
        records[cve_id] = record

    record.packages.append(package)
    return record


def convert_feed(feed: Mapping[str, Any]) -> List[VulnerabilityRecord]:
    """
    Convert the raw tracker feed into identifier-unique records.

    Args:
        feed: Raw feed, package name -> cve_id -> advisory

    Returns:
        Records sorted by cve_id, each with its full package/release tree
    """
    records: Dict[str, VulnerabilityRecord] = {}

    for package_name in sorted(feed):
        advisories = feed[package_name]
        if not isinstance(advisories, Mapping):
            logger.warning(f"Skipping package {package_name}: expected a mapping of advisories")
            continue

        for cve_id in sorted(advisories):
            if not str(cve_id).strip():
                logger.warning(f"Skipping advisory with empty identifier under {package_name}")
                continue
            advisory = advisories[cve_id]
            if not isinstance(advisory, Mapping):
                logger.warning(f"Skipping {package_name}/{cve_id}: advisory is not a mapping")
                continue

            package = Package(package_name=package_name, releases=build_releases(advisory))
            merge_package(records, cve_id, advisory, package)

    logger.debug(f"Normalized {len(feed)} packages into {len(records)} records")
    return [records[cve_id] for cve_id in sorted(records)]
