"""
Data quality checks run against the corpus after a sync.

Checks implemented:
- Identifier uniqueness: one debian_cves row per cve_id
- No orphan packages: every package points at an existing record
- No orphan releases: every release points at an existing package
- Identifier format: CVE-YYYY-NNNN+ or the tracker's TEMP-NNNNNNN-XXXXXX ids
- Releases have status: no release row with an empty status
- Resolved has fixed version: resolved releases name the fixing version

The schema carries no foreign keys, so the orphan checks are what audits
ownership between the three tables.
"""
from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass
class QualityCheckResult:
    """
    Result of a single quality check.

    Attributes:
        check_name: Unique identifier for the check
        passed: True if check passed, False otherwise
        message: Human-readable summary of the result
        details: Optional dict with additional context (e.g., counts)
    """
    check_name: str
    passed: bool
    message: str
    details: Dict[str, Any] = None


class CorpusQualityChecker:
    """Runs SQL checks against the corpus tables."""

    def __init__(self, database):
        """
        Initialize quality checker.

        Args:
            database: Database instance with the corpus schema
        """
        self.db = database

    def run_all_checks(self) -> List[QualityCheckResult]:
        """
        Run all quality checks.

        Returns:
            List of QualityCheckResult objects, one per check
        """
        return [
            self.check_identifier_unique(),
            self.check_no_orphan_packages(),
            self.check_no_orphan_releases(),
            self.check_identifier_format(),
            self.check_releases_have_status(),
            self.check_resolved_has_fixed_version(),
        ]

    def _count(self, query: str) -> int:
        return self.db.connect().execute(query).fetchone()[0]

    def check_identifier_unique(self) -> QualityCheckResult:
        result = self._count("""
            SELECT count(*) FROM (
                SELECT cve_id FROM debian_cves
                GROUP BY cve_id
                HAVING count(*) > 1
            )
        """)

        return QualityCheckResult(
            check_name="identifier_unique",
            passed=result == 0,
            message=f"{result} identifiers stored more than once" if result > 0 else "All identifiers unique",
            details={"duplicate_count": result}
        )

    def check_no_orphan_packages(self) -> QualityCheckResult:
        result = self._count("""
            SELECT count(*) FROM debian_packages p
            WHERE NOT EXISTS (SELECT 1 FROM debian_cves c WHERE c.id = p.debian_cve_id)
        """)

        return QualityCheckResult(
            check_name="no_orphan_packages",
            passed=result == 0,
            message=f"{result} packages without a record" if result > 0 else "All packages owned by a record",
            details={"orphan_count": result}
        )

    def check_no_orphan_releases(self) -> QualityCheckResult:
        result = self._count("""
            SELECT count(*) FROM debian_releases r
            WHERE NOT EXISTS (SELECT 1 FROM debian_packages p WHERE p.id = r.debian_package_id)
        """)

        return QualityCheckResult(
            check_name="no_orphan_releases",
            passed=result == 0,
            message=f"{result} releases without a package" if result > 0 else "All releases owned by a package",
            details={"orphan_count": result}
        )

    def check_identifier_format(self) -> QualityCheckResult:
        """
        Check identifiers against the CVE and tracker TEMP formats.

        Uses SQL SIMILAR TO (regex) for format validation.
        """
        result = self._count("""
            SELECT count(*) FROM debian_cves
            WHERE cve_id NOT SIMILAR TO '(CVE-[0-9]{4}-[0-9]{4,}|TEMP-[0-9]+-[0-9A-Fa-f]+)'
        """)

        return QualityCheckResult(
            check_name="identifier_format",
            passed=result == 0,
            message=f"{result} invalid identifier formats" if result > 0 else "All identifiers valid",
            details={"invalid_count": result}
        )

    def check_releases_have_status(self) -> QualityCheckResult:
        result = self._count("""
            SELECT count(*) FROM debian_releases
            WHERE status IS NULL OR trim(status) = ''
        """)

        return QualityCheckResult(
            check_name="releases_have_status",
            passed=result == 0,
            message=f"{result} releases without status" if result > 0 else "All releases have status",
            details={"missing_count": result}
        )

    def check_resolved_has_fixed_version(self) -> QualityCheckResult:
        """
        Resolved releases should say which version fixed them.

        The tracker uses fixed_version "0" for packages never affected,
        which still counts as present.
        """
        result = self._count("""
            SELECT count(*) FROM debian_releases
            WHERE status = 'resolved'
              AND (fixed_version IS NULL OR trim(fixed_version) = '')
        """)

        return QualityCheckResult(
            check_name="resolved_has_fixed_version",
            passed=result == 0,
            message=f"{result} resolved releases without fixed version" if result > 0 else "All resolved releases have fixed version",
            details={"missing_count": result}
        )
