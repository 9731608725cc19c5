"""
Database connection, schema and transaction management for the corpus.

This module provides:
- DuckDB connection lifecycle management
- The three corpus tables (debian_cves, debian_packages, debian_releases)
- A sync_runs table recording every sync attempt
- Transaction, an explicit scope that commits on success and rolls back
  on any exception

Design decisions:
- Surrogate BIGINT ids instead of using cve_id as the key, so a full
  replace never re-inserts a key deleted in the same transaction
- No UNIQUE or FOREIGN KEY constraints: DuckDB checks them eagerly inside
  a transaction, which breaks delete-then-insert. Ownership is guaranteed
  by the store and audited by the quality checks instead
- Non-unique indexes on the lookup columns used by the query layer
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import duckdb

from .errors import StorageError

logger = logging.getLogger(__name__)

CORPUS_TABLES = ("debian_cves", "debian_packages", "debian_releases")


class Transaction:
    """
    Scope for a single DuckDB transaction.

    Usage:
        with Transaction(conn) as tx_conn:
            tx_conn.execute(...)

    Leaving the block normally commits. Leaving it through an exception
    rolls back and lets the exception propagate unchanged.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self.conn = conn

    def __enter__(self) -> duckdb.DuckDBPyConnection:
        try:
            self.conn.begin()
        except duckdb.Error as e:
            logger.error(f"Failed to begin transaction: {e}")
            raise StorageError("begin", str(e)) from e
        return self.conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            try:
                self.conn.rollback()
            except duckdb.Error as e:
                # Original exception still propagates.
                logger.error(f"Rollback after {exc_type.__name__} failed: {e}")
            return False

        try:
            self.conn.commit()
        except duckdb.Error as e:
            logger.error(f"Failed to commit transaction: {e}")
            raise StorageError("commit", str(e)) from e
        return False


class Database:
    """
    Manages the DuckDB connection and corpus schema.

    This class is responsible for:
    - Creating and maintaining a single database connection
    - Initializing the record/package/release tables
    - Handing out Transaction scopes for the replace operation
    - Recording sync run metadata
    """

    def __init__(self, db_path: str = "debian_corpus.duckdb"):
        """
        Initialize database manager.

        Args:
            db_path: Path to DuckDB database file (created if doesn't exist)
        """
        self.db_path = db_path
        self.conn: Optional[duckdb.DuckDBPyConnection] = None

    def connect(self) -> duckdb.DuckDBPyConnection:
        """
        Get or create database connection.

        Returns:
            Active DuckDB connection
        """
        if self.conn is None:
            self.conn = duckdb.connect(self.db_path)
        return self.conn

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def transaction(self) -> Transaction:
        """Open a transaction scope on the shared connection."""
        return Transaction(self.connect())

    def initialize_schema(self):
        """
        Create all required tables if they don't exist.

        Tables created:
        - debian_cves: One row per advisory identifier
        - debian_packages: Packages owned by a debian_cves row
        - debian_releases: Per-codename entries owned by a debian_packages row
        - sync_runs: Sync execution metadata
        """
        conn = self.connect()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS debian_cves (
                id BIGINT PRIMARY KEY,
                cve_id VARCHAR NOT NULL CHECK (cve_id <> ''),
                scope VARCHAR,
                description VARCHAR
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS debian_packages (
                id BIGINT PRIMARY KEY,
                debian_cve_id BIGINT NOT NULL,
                package_name VARCHAR NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS debian_releases (
                id BIGINT PRIMARY KEY,
                debian_package_id BIGINT NOT NULL,
                product_name VARCHAR,
                status VARCHAR,
                fixed_version VARCHAR,
                urgency VARCHAR,
                version VARCHAR
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS sync_runs (
                run_id VARCHAR PRIMARY KEY,
                started_at TIMESTAMP,
                completed_at TIMESTAMP,
                status VARCHAR,
                record_count INTEGER,
                metadata JSON
            )
        """)

        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_cves_cve_id
            ON debian_cves(cve_id)
        """)

        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_packages_name
            ON debian_packages(package_name)
        """)

        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_packages_cve
            ON debian_packages(debian_cve_id)
        """)

        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_releases_package
            ON debian_releases(debian_package_id)
        """)

    def record_sync_run(
        self,
        run_id: str,
        started_at: datetime,
        completed_at: Optional[datetime],
        status: str,
        record_count: int,
        metadata: Dict[str, Any]
    ):
        """
        Store the outcome of a sync run.

        Written outside the replace transaction so failed runs are kept too.

        Args:
            run_id: Sync run identifier
            started_at: When the run started
            completed_at: When the run ended (None if it never finished)
            status: success | failed
            record_count: Records written by the replace
            metadata: Serialized SyncMetrics
        """
        conn = self.connect()
        conn.execute("DELETE FROM sync_runs WHERE run_id = ?", [run_id])
        conn.execute("""
            INSERT INTO sync_runs
            (run_id, started_at, completed_at, status, record_count, metadata)
            VALUES (?, ?, ?, ?, ?, ?)
        """, [
            run_id,
            started_at,
            completed_at,
            status,
            record_count,
            json.dumps(metadata)
        ])

    def get_sync_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored sync run as a dict, or None."""
        conn = self.connect()
        result = conn.execute(
            "SELECT * FROM sync_runs WHERE run_id = ?", [run_id]
        ).fetchone()

        if result:
            columns = [desc[0] for desc in conn.description]
            return dict(zip(columns, result))
        return None

    def get_current_run_id(self) -> str:
        """
        Generate a unique run ID for this sync execution.

        Returns:
            Run ID in format: sync_YYYYMMDD_HHMMSS
        """
        return f"sync_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}"

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
