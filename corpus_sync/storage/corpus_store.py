"""
Corpus store: atomic full replace and associative reads.

The corpus is never updated in place. Every sync deletes all three tables
and inserts the new snapshot inside one transaction, so readers see either
the old corpus or the new one.

Operations:
1. replace: Delete everything, insert records in fixed-size batches
2. get_by_id / get_many_by_id: Identifier lookup with full hydration
3. scan_candidates: Internal ids of records listing a package name
4. hydrate_filtered: Record restricted to one package, codename and status

Design decisions:
- Child-before-parent delete order (releases, packages, records)
- Surrogate ids allocated above the current maximum before the delete,
  so new rows never reuse an id removed in the same transaction
- Batches bound the statement payload and drive progress reporting
- Every DuckDB error becomes a StorageError naming the failed phase
"""
import itertools
import logging
from collections import Counter
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import duckdb

from .database import CORPUS_TABLES, Database
from .errors import ConfigurationError, CorpusIntegrityError, StorageError
from .models import Package, Release, VulnerabilityRecord
from observability.progress import ProgressSink

logger = logging.getLogger(__name__)

# Child tables first.
DELETE_ORDER = (
    ("delete-release", "debian_releases"),
    ("delete-package", "debian_packages"),
    ("delete-record", "debian_cves"),
)


def validate_batch_size(batch_size: Any) -> int:
    """
    Check that batch_size is a positive integer.

    Raises:
        ConfigurationError: If batch_size is missing, not an int or < 1
    """
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise ConfigurationError(
            f"batch_size must be a positive integer, got {batch_size!r}"
        )
    return batch_size


def chunk_ranges(total: int, size: int) -> Iterator[Tuple[int, int]]:
    """Yield (start, end) slice bounds covering range(total) in chunks of size."""
    for start in range(0, total, size):
        yield start, min(start + size, total)


class _IdAllocator:
    """Hands out surrogate ids for the three corpus tables."""

    def __init__(self, starts: Mapping[str, int]):
        self._counters = {table: itertools.count(start) for table, start in starts.items()}

    def next(self, table: str) -> int:
        return next(self._counters[table])


class CorpusStore:
    """
    Owns the record/package/release tables.

    Replace is the only write path and runs in a single transaction.
    Reads are not transactional.
    """

    def __init__(self, database: Database):
        """
        Initialize corpus store.

        Args:
            database: Database instance holding the corpus schema
        """
        self.db = database

    def replace(
        self,
        records: List[VulnerabilityRecord],
        batch_size: int,
        progress: Optional[ProgressSink] = None
    ) -> int:
        """
        Atomically replace the whole corpus with records.

        Args:
            records: Identifier-unique records with nested packages/releases
            batch_size: Records inserted per batch (positive int)
            progress: Sink notified after every inserted batch

        Returns:
            Number of records written

        Raises:
            ConfigurationError: batch_size invalid (nothing touched)
            ValueError: duplicate identifiers in records (nothing touched)
            StorageError: any DuckDB failure (transaction rolled back)
        """
        batch_size = validate_batch_size(batch_size)
        self._check_unique(records)
        progress = progress or ProgressSink()

        progress.start(len(records))
        try:
            with self.db.transaction() as conn:
                ids = _IdAllocator(self._next_ids(conn))
                self._delete_all(conn)

                for batch_num, (start, end) in enumerate(chunk_ranges(len(records), batch_size), 1):
                    phase = f"insert-batch-{batch_num}"
                    try:
                        self._insert_batch(conn, records[start:end], ids)
                    except duckdb.Error as e:
                        logger.error(f"Failed to insert batch {batch_num} (records {start}-{end}): {e}")
                        raise StorageError(phase, str(e)) from e
                    progress.advance(end - start)
        finally:
            progress.finish()

        logger.info(f"Replaced corpus with {len(records)} records")
        return len(records)

    def insert_feed(
        self,
        feed: Mapping[str, Any],
        batch_size: int,
        progress: Optional[ProgressSink] = None
    ) -> int:
        """Normalize a raw tracker feed and replace the corpus with it."""
        from ingestion.normalizer import convert_feed

        validate_batch_size(batch_size)
        return self.replace(convert_feed(feed), batch_size, progress)

    def _check_unique(self, records: Iterable[VulnerabilityRecord]):
        duplicates = [cve_id for cve_id, n in Counter(r.cve_id for r in records).items() if n > 1]
        if duplicates:
            raise ValueError(f"Duplicate identifiers in replace input: {sorted(duplicates)[:10]}")

    def _next_ids(self, conn: duckdb.DuckDBPyConnection) -> Dict[str, int]:
        try:
            return {
                table: conn.execute(f"SELECT coalesce(max(id), 0) + 1 FROM {table}").fetchone()[0]
                for table in CORPUS_TABLES
            }
        except duckdb.Error as e:
            logger.error(f"Failed to read current max ids: {e}")
            raise StorageError("read", str(e)) from e

    def _delete_all(self, conn: duckdb.DuckDBPyConnection):
        for phase, table in DELETE_ORDER:
            try:
                conn.execute(f"DELETE FROM {table}")
            except duckdb.Error as e:
                logger.error(f"Failed to delete {table}: {e}")
                raise StorageError(phase, str(e)) from e

    def _insert_batch(
        self,
        conn: duckdb.DuckDBPyConnection,
        batch: List[VulnerabilityRecord],
        ids: _IdAllocator
    ):
        """Insert one batch of records with their packages and releases."""
        cve_rows = []
        package_rows = []
        release_rows = []

        for record in batch:
            record_id = ids.next("debian_cves")
            cve_rows.append([record_id, record.cve_id, record.scope, record.description])

            for package in record.packages:
                package_id = ids.next("debian_packages")
                package_rows.append([package_id, record_id, package.package_name])

                for release in package.releases:
                    release_rows.append([
                        ids.next("debian_releases"),
                        package_id,
                        release.product_name,
                        release.status,
                        release.fixed_version,
                        release.urgency,
                        release.version,
                    ])

        if cve_rows:
            conn.executemany("""
                INSERT INTO debian_cves (id, cve_id, scope, description)
                VALUES (?, ?, ?, ?)
            """, cve_rows)

        if package_rows:
            conn.executemany("""
                INSERT INTO debian_packages (id, debian_cve_id, package_name)
                VALUES (?, ?, ?)
            """, package_rows)

        if release_rows:
            conn.executemany("""
                INSERT INTO debian_releases
                (id, debian_package_id, product_name, status, fixed_version, urgency, version)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, release_rows)

    def get_by_id(self, cve_id: str) -> Optional[VulnerabilityRecord]:
        """
        Look up one record by identifier with all packages and releases.

        Args:
            cve_id: Advisory identifier

        Returns:
            Fully hydrated record, or None if the identifier is unknown

        Raises:
            StorageError: If any read fails (no partial record is returned)
        """
        conn = self.db.connect()
        try:
            row = conn.execute("""
                SELECT id, cve_id, scope, description FROM debian_cves
                WHERE cve_id = ?
            """, [cve_id]).fetchone()

            if row is None:
                return None

            record = self._record_from_row(row)
            for package_id, package_name in self._fetch_packages(conn, row[0]):
                record.packages.append(Package(
                    package_name=package_name,
                    releases=self._fetch_releases(conn, package_id),
                ))
            return record

        except duckdb.Error as e:
            logger.error(f"Failed to get {cve_id}: {e}")
            raise StorageError("read", str(e)) from e

    def get_many_by_id(self, cve_ids: Iterable[str]) -> Dict[str, VulnerabilityRecord]:
        """
        Look up several identifiers.

        Unknown identifiers are left out of the result. Any read failure
        aborts the whole lookup.
        """
        found = {}
        for cve_id in cve_ids:
            record = self.get_by_id(cve_id)
            if record is not None:
                found[record.cve_id] = record
        return found

    def scan_candidates(self, package_name: str) -> List[int]:
        """
        Return internal ids of records having any package named package_name.

        This is a coarse scan: no codename or status filter is applied.
        """
        conn = self.db.connect()
        try:
            rows = conn.execute("""
                SELECT DISTINCT debian_cve_id FROM debian_packages
                WHERE package_name = ?
                ORDER BY debian_cve_id
            """, [package_name]).fetchall()
        except duckdb.Error as e:
            logger.error(f"Failed to scan candidates for {package_name}: {e}")
            raise StorageError("read", str(e)) from e

        return [row[0] for row in rows]

    def hydrate_filtered(
        self,
        record_id: int,
        package_name: str,
        codename: str,
        status: str
    ) -> VulnerabilityRecord:
        """
        Load a record with a filtered package/release view.

        Only packages named package_name are attached, and within them only
        releases matching both codename and status. The result may have
        packages with no releases, or no packages at all.

        Args:
            record_id: Internal id returned by scan_candidates
            package_name: Package to keep
            codename: Release codename to keep (e.g. bookworm)
            status: Release status to keep (e.g. open)

        Raises:
            CorpusIntegrityError: If record_id no longer resolves to a record
            StorageError: If any read fails
        """
        conn = self.db.connect()
        try:
            row = conn.execute("""
                SELECT id, cve_id, scope, description FROM debian_cves
                WHERE id = ?
            """, [record_id]).fetchone()

            if row is None:
                logger.error(f"Package row references missing record id {record_id}")
                raise CorpusIntegrityError(f"No record with internal id {record_id}")

            record = self._record_from_row(row)
            for package_id, name in self._fetch_packages(conn, record_id, package_name):
                record.packages.append(Package(
                    package_name=name,
                    releases=self._fetch_releases(conn, package_id, codename, status),
                ))
            return record

        except duckdb.Error as e:
            logger.error(f"Failed to hydrate record id {record_id}: {e}")
            raise StorageError("read", str(e)) from e

    def count(self) -> Dict[str, int]:
        """Row counts for the three corpus tables."""
        conn = self.db.connect()
        try:
            return {
                table: conn.execute(f"SELECT count(*) FROM {table}").fetchone()[0]
                for table in CORPUS_TABLES
            }
        except duckdb.Error as e:
            raise StorageError("read", str(e)) from e

    def _record_from_row(self, row: Tuple) -> VulnerabilityRecord:
        return VulnerabilityRecord(cve_id=row[1], scope=row[2] or "", description=row[3] or "")

    def _fetch_packages(
        self,
        conn: duckdb.DuckDBPyConnection,
        record_id: int,
        package_name: Optional[str] = None
    ) -> List[Tuple[int, str]]:
        if package_name is None:
            return conn.execute("""
                SELECT id, package_name FROM debian_packages
                WHERE debian_cve_id = ?
                ORDER BY id
            """, [record_id]).fetchall()

        return conn.execute("""
            SELECT id, package_name FROM debian_packages
            WHERE debian_cve_id = ? AND package_name = ?
            ORDER BY id
        """, [record_id, package_name]).fetchall()

    def _fetch_releases(
        self,
        conn: duckdb.DuckDBPyConnection,
        package_id: int,
        codename: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Release]:
        query = """
            SELECT product_name, status, fixed_version, urgency, version
            FROM debian_releases
            WHERE debian_package_id = ?
        """
        params: List[Any] = [package_id]
        if codename is not None:
            query += " AND product_name = ?"
            params.append(codename)
        if status is not None:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY id"

        return [
            Release(
                product_name=product_name or "",
                status=release_status or "",
                fixed_version=fixed_version or "",
                urgency=urgency or "",
                version=version or "",
            )
            for product_name, release_status, fixed_version, urgency, version
            in conn.execute(query, params).fetchall()
        ]
