"""
End-to-end tests for the sync orchestrator and command line.

Each test writes its own config.yaml pointing at a temporary database, a
cached tracker feed and a temporary report directory.
"""
import json

import pytest
import yaml

from observability.progress import ProgressSink
from run_sync import CorpusSync, load_config, main
from storage.errors import ConfigurationError


@pytest.fixture
def config_path(tmp_path, feed_file):
    config = {
        "database": {"path": str(tmp_path / "corpus.duckdb")},
        "feed": {"cache_path": str(feed_file), "use_cache": True},
        "sync": {"batch_size": 2, "progress": False},
        "output": {"report_dir": str(tmp_path / "reports")},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


class TestCorpusSync:

    def test_full_sync_flow(self, config_path, tmp_path):
        sync = CorpusSync(str(config_path))
        try:
            metrics = sync.run(progress=ProgressSink())

            assert metrics.records_written == 4
            assert metrics.batches_written == 2
            assert metrics.feed_packages == 3
            assert metrics.errors == 0
            assert metrics.source_health["debian_tracker"]["healthy"] is True

            assert set(sync.engine.get_unfixed("12", "openssl")) == {"CVE-2024-0001"}
            assert sync.engine.get_by_id("CVE-2024-0003").package_names() == ["curl"]

            run = sync.db.get_sync_run(metrics.run_id)
            assert run["status"] == "success"
            assert run["record_count"] == 4

            reports = list((tmp_path / "reports").glob("sync-report-*.md"))
            assert len(reports) == 1
        finally:
            sync.close()

    def test_failed_sync_keeps_previous_corpus(self, config_path, feed_file):
        sync = CorpusSync(str(config_path))
        try:
            sync.run(progress=ProgressSink())
            before = sync.engine.get_by_id("CVE-2024-0001")

            feed_file.write_text(json.dumps(["not", "a", "feed"]), encoding="utf-8")

            with pytest.raises(RuntimeError, match="Sync execution failed"):
                sync.run(progress=ProgressSink())

            assert sync.engine.get_by_id("CVE-2024-0001") == before
            assert sync.store.count()["debian_cves"] == 4
            assert sync.adapter.get_health().is_healthy is False
        finally:
            sync.close()

    def test_failed_sync_is_recorded(self, config_path, feed_file):
        feed_file.write_text("{}", encoding="utf-8")
        sync = CorpusSync(str(config_path))
        try:
            with pytest.raises(RuntimeError):
                sync.run(progress=ProgressSink())

            status = sync.db.connect().execute(
                "SELECT status FROM sync_runs"
            ).fetchall()
            assert status == [("failed",)]
        finally:
            sync.close()

    def test_unreachable_database_reported_as_sync_failure(self, tmp_path, feed_file):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "database": {"path": str(tmp_path / "missing_dir" / "corpus.duckdb")},
            "feed": {"cache_path": str(feed_file), "use_cache": True},
            "sync": {"batch_size": 2, "progress": False},
            "output": {"report_dir": str(tmp_path / "reports")},
        }), encoding="utf-8")
        sync = CorpusSync(str(path))
        try:
            with pytest.raises(RuntimeError, match="Sync execution failed"):
                sync.run(progress=ProgressSink())
        finally:
            sync.close()

    def test_batch_size_override(self, config_path):
        sync = CorpusSync(str(config_path), batch_size=10)
        try:
            metrics = sync.run(progress=ProgressSink())
            assert metrics.batches_written == 1
        finally:
            sync.close()


class TestConfiguration:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_missing_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"database": {"path": "x.duckdb"}, "feed": {}}))

        with pytest.raises(ConfigurationError, match="sync"):
            load_config(str(path))

    def test_missing_batch_size(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "database": {"path": "x.duckdb"},
            "feed": {},
            "sync": {"progress": False},
        }))

        with pytest.raises(ConfigurationError, match="batch_size"):
            load_config(str(path))

    @pytest.mark.parametrize("batch_size", [0, -5, "many"])
    def test_invalid_batch_size(self, tmp_path, batch_size):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "database": {"path": str(tmp_path / "x.duckdb")},
            "feed": {},
            "sync": {"batch_size": batch_size},
        }))

        with pytest.raises(ConfigurationError):
            CorpusSync(str(path))


class TestCommandLine:

    def test_sync_then_query(self, config_path, capsys):
        assert main(["--config", str(config_path), "sync", "--no-progress"]) == 0
        capsys.readouterr()

        assert main(["--config", str(config_path), "unfixed", "12", "openssl"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert list(output) == ["CVE-2024-0001"]
        assert output["CVE-2024-0001"]["packages"][0]["package_name"] == "openssl"

        assert main(["--config", str(config_path), "get", "CVE-2024-0002", "CVE-1999-0001"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert list(output) == ["CVE-2024-0002"]

        assert main(["--config", str(config_path), "status", "12", "curl", "open"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert list(output) == ["CVE-2024-0003"]

    def test_query_on_empty_corpus(self, config_path, capsys):
        assert main(["--config", str(config_path), "fixed", "12", "openssl"]) == 0
        assert json.loads(capsys.readouterr().out) == {}

    def test_unsupported_version_exit_code(self, config_path):
        assert main(["--config", str(config_path), "fixed", "99", "openssl"]) == 2

    def test_invalid_config_exit_code(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yaml"), "get", "CVE-2024-0001"]) == 1
