"""
Shared pytest fixtures for corpus sync tests.

Provides a temporary DuckDB database, a small tracker feed covering the
merge and filtering edge cases, and ready-made store/engine instances.
"""
import json
import tempfile
from pathlib import Path

import pytest

from ingestion.normalizer import convert_feed
from observability.progress import ProgressSink
from query.engine import QueryEngine
from storage import CorpusStore, Database


class RecordingProgress(ProgressSink):
    """Progress sink remembering every notification."""

    def __init__(self):
        self.events = []

    def start(self, total):
        self.events.append(("start", total))

    def advance(self, count):
        self.events.append(("advance", count))

    def finish(self):
        self.events.append(("finish",))


@pytest.fixture
def temp_db():
    """
    Create a temporary database for testing.

    Yields:
        Database instance with schema initialized

    Cleanup:
        Automatically closes connection and removes file after test
    """
    with tempfile.NamedTemporaryFile(suffix=".duckdb", delete=True) as f:
        db_path = f.name

    db = Database(db_path)
    db.initialize_schema()
    yield db
    db.close()

    Path(db_path).unlink(missing_ok=True)
    Path(db_path + ".wal").unlink(missing_ok=True)


@pytest.fixture
def store(temp_db):
    return CorpusStore(temp_db)


@pytest.fixture
def engine(store):
    return QueryEngine(store)


@pytest.fixture
def recording_progress():
    return RecordingProgress()


@pytest.fixture
def sample_feed():
    """
    Small tracker feed.

    - CVE-2024-0001 is listed under openssl and openssl1.0 (merge case)
    - CVE-2024-0002 lists openssl but only as resolved on bookworm
    - TEMP-0000000-ABCDEF lists curl with no releases at all
    """
    return {
        "openssl": {
            "CVE-2024-0001": {
                "scope": "remote",
                "description": "Buffer overflow in X.509 parsing",
                "releases": {
                    "bookworm": {
                        "status": "open",
                        "repositories": {"bookworm": "3.0.11-1~deb12u2"},
                        "urgency": "not yet assigned"
                    },
                    "bullseye": {
                        "status": "resolved",
                        "repositories": {"bullseye": "1.1.1w-0+deb11u1"},
                        "fixed_version": "1.1.1w-0+deb11u1",
                        "urgency": "medium"
                    }
                }
            },
            "CVE-2024-0002": {
                "scope": "local",
                "description": "Timing side channel in RSA decryption",
                "releases": {
                    "bookworm": {
                        "status": "resolved",
                        "repositories": {"bookworm": "3.0.11-1~deb12u2"},
                        "fixed_version": "3.0.11-1~deb12u1",
                        "urgency": "low"
                    }
                }
            }
        },
        "openssl1.0": {
            "CVE-2024-0001": {
                "scope": "remote",
                "description": "Buffer overflow in X.509 parsing",
                "releases": {
                    "stretch": {
                        "status": "open",
                        "repositories": {"stretch": "1.0.2u-1~deb9u7"},
                        "urgency": "not yet assigned"
                    }
                }
            }
        },
        "curl": {
            "CVE-2024-0003": {
                "scope": "remote",
                "description": "Cookie injection with none file",
                "releases": {
                    "bookworm": {
                        "status": "open",
                        "repositories": {"bookworm": "7.88.1-10+deb12u5"},
                        "urgency": "unimportant"
                    },
                    "bullseye": {
                        "status": "open",
                        "repositories": {},
                        "urgency": "unimportant"
                    }
                }
            },
            "TEMP-0000000-ABCDEF": {
                "scope": "local",
                "description": "",
                "releases": {}
            }
        }
    }


@pytest.fixture
def sample_records(sample_feed):
    return convert_feed(sample_feed)


@pytest.fixture
def loaded_store(store, sample_records):
    """Store already holding the sample corpus."""
    store.replace(sample_records, batch_size=2)
    return store


@pytest.fixture
def feed_file(tmp_path, sample_feed):
    path = tmp_path / "debian.json"
    path.write_text(json.dumps(sample_feed), encoding="utf-8")
    return path
