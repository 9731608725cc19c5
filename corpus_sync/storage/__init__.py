"""
Storage layer for the Debian security-tracker corpus.

This module persists the corpus in DuckDB as three tables
(record / package / release) and replaces it atomically on every sync.

Components:
- Database: Connection management, schema and transaction scopes
- CorpusStore: Atomic replace and associative reads
- VulnerabilityRecord, Package, Release: Corpus records

Usage:
    from storage import Database, CorpusStore

    db = Database("debian_corpus.duckdb")
    db.initialize_schema()

    store = CorpusStore(db)
    store.replace(records, batch_size=500)
    record = store.get_by_id("CVE-2024-0001")
"""
from .corpus_store import CorpusStore
from .database import Database, Transaction
from .errors import ConfigurationError, CorpusIntegrityError, StorageError
from .models import STATUS_OPEN, STATUS_RESOLVED, Package, Release, VulnerabilityRecord

__all__ = [
    "Database",
    "Transaction",
    "CorpusStore",
    "ConfigurationError",
    "CorpusIntegrityError",
    "StorageError",
    "VulnerabilityRecord",
    "Package",
    "Release",
    "STATUS_OPEN",
    "STATUS_RESOLVED",
]
