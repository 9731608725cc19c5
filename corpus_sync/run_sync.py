#!/usr/bin/env python3
"""
Sync orchestrator and command line entry point for the Debian corpus.

A sync run:
1. Schema: Create the corpus tables if missing
2. Fetch: Load the tracker snapshot (cache or URL)
3. Normalize: Merge the package-keyed feed into identifier-unique records
4. Replace: Swap the whole corpus in one transaction, batch by batch
5. Quality: Run integrity checks on the new corpus
6. Report: Write a Markdown run report and record the run

Queries run against whatever corpus the last successful sync committed.

Usage:
    python run_sync.py [--config config.yaml] sync [--batch-size N]
    python run_sync.py get CVE-2024-0001 [CVE-...]
    python run_sync.py unfixed 12 openssl
    python run_sync.py fixed 12 openssl
    python run_sync.py status 12 openssl undetermined
"""
import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import duckdb
import yaml

from ingestion.debian_feed_adapter import DebianFeedAdapter
from ingestion.normalizer import convert_feed
from observability.metrics import SyncMetrics
from observability.progress import MetricsProgress, ProgressSink, TqdmProgress
from observability.quality_checks import CorpusQualityChecker
from observability.reporter import SyncReporter
from query.codenames import UnsupportedVersionError
from query.engine import QueryEngine
from storage.corpus_store import CorpusStore, validate_batch_size
from storage.database import Database
from storage.errors import ConfigurationError
from storage.models import VulnerabilityRecord

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ["database", "feed", "sync"]


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load and validate the YAML configuration.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If a required key or the batch size is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    for key in REQUIRED_KEYS:
        if not isinstance(config.get(key), dict):
            raise ConfigurationError(f"Missing required config section: {key}")

    if not config["database"].get("path"):
        raise ConfigurationError("Missing required config key: database.path")

    if "batch_size" not in config["sync"]:
        raise ConfigurationError("Missing required config key: sync.batch_size")

    return config


class CorpusSync:
    """
    Coordinates fetch, normalize and replace for one corpus.

    A failed run leaves the previous corpus in place: the replace either
    commits completely or not at all.
    """

    def __init__(self, config_path: str = "config.yaml", batch_size: Optional[int] = None):
        """
        Initialize sync with configuration.

        Args:
            config_path: Path to YAML configuration file
            batch_size: Overrides sync.batch_size from the config
        """
        self.config = load_config(config_path)
        sync_config = self.config["sync"]

        self.batch_size = validate_batch_size(
            batch_size if batch_size is not None else sync_config["batch_size"]
        )
        self.show_progress = bool(sync_config.get("progress", True))
        self.report_dir = Path(self.config.get("output", {}).get("report_dir", "output"))

        self.db = Database(self.config["database"]["path"])
        self.store = CorpusStore(self.db)
        self.engine = QueryEngine(self.store)
        self.adapter = DebianFeedAdapter(self.config["feed"])
        self.quality_checker = CorpusQualityChecker(self.db)
        self.reporter = SyncReporter()

        logger.info(f"Corpus sync initialized with config: {config_path}")

    def run(self, progress: Optional[ProgressSink] = None) -> SyncMetrics:
        """
        Execute a complete sync run.

        Args:
            progress: Sink for batch progress (tqdm bar by default)

        Returns:
            SyncMetrics with execution statistics

        Raises:
            RuntimeError: If any stage fails
        """
        run_id = self.db.get_current_run_id()
        metrics = SyncMetrics(run_id=run_id, started_at=datetime.utcnow(), batch_size=self.batch_size)
        if progress is None:
            progress = TqdmProgress(disable=not self.show_progress)

        logger.info(f"=== Starting Sync Run: {run_id} ===")

        try:
            logger.info("Stage 1: Initializing database schema")
            self.db.initialize_schema()

            logger.info("Stage 2: Fetching tracker feed")
            feed = self._fetch(metrics)

            logger.info("Stage 3: Normalizing feed")
            records = convert_feed(feed)
            metrics.record_corpus(records)
            logger.info(
                f"  {metrics.records_total} records, {metrics.packages_total} packages, "
                f"{metrics.releases_total} releases"
            )

            logger.info("Stage 4: Replacing corpus")
            self.store.replace(records, self.batch_size, MetricsProgress(metrics, progress))

            logger.info("Stage 5: Running quality checks")
            quality_results = self.quality_checker.run_all_checks()
            for result in quality_results:
                if not result.passed:
                    logger.warning(f"  Quality check {result.check_name}: {result.message}")

            logger.info("Stage 6: Generating report")
            metrics.completed_at = datetime.utcnow()
            report = self.reporter.generate_report(metrics, quality_results)
            report_path = self.reporter.save_report(report, self.report_dir)
            self._record_run(metrics, "success")

            duration = (metrics.completed_at - metrics.started_at).total_seconds()
            logger.info("=== Sync Complete ===")
            logger.info(f"Duration: {duration:.1f}s")
            logger.info(f"Records: {metrics.records_written}")
            logger.info(f"Report: {report_path}")

        except Exception as e:
            context = {"phase": getattr(e, "phase", None)}
            metrics.record_error(str(e), context)
            metrics.completed_at = datetime.utcnow()
            logger.error(f"Sync failed: {e}", exc_info=True)
            try:
                self._record_run(metrics, "failed")
            except duckdb.Error as record_error:
                logger.error(f"Could not record failed run {metrics.run_id}: {record_error}")
            raise RuntimeError(f"Sync execution failed: {e}") from e

        return metrics

    def _fetch(self, metrics: SyncMetrics) -> Dict[str, Any]:
        try:
            feed = self.adapter.fetch()
        finally:
            health = self.adapter.get_health()
            metrics.source_health[health.source_id] = {
                "healthy": health.is_healthy,
                "records": health.records_fetched,
                "error": health.error_message
            }

        metrics.feed_packages = len(feed)
        return feed

    def _record_run(self, metrics: SyncMetrics, status: str):
        self.db.record_sync_run(
            run_id=metrics.run_id,
            started_at=metrics.started_at,
            completed_at=metrics.completed_at,
            status=status,
            record_count=metrics.records_written if status == "success" else 0,
            metadata=metrics.to_dict()
        )

    def close(self):
        self.db.close()


def _dump(records: Dict[str, VulnerabilityRecord]) -> str:
    return json.dumps(
        {cve_id: records[cve_id].to_dict() for cve_id in sorted(records)},
        indent=2
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync and query the Debian security-tracker corpus"
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    sync_cmd = commands.add_parser("sync", help="Replace the corpus with a fresh feed snapshot")
    sync_cmd.add_argument("--batch-size", type=int, default=None, help="Records per insert batch")
    sync_cmd.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    get_cmd = commands.add_parser("get", help="Look up records by identifier")
    get_cmd.add_argument("cve_ids", nargs="+", metavar="CVE_ID")

    for name, help_text in (
        ("unfixed", "Records with an open release for a Debian version"),
        ("fixed", "Records with a resolved release for a Debian version"),
    ):
        cmd = commands.add_parser(name, help=help_text)
        cmd.add_argument("major", help="Debian major version, e.g. 12")
        cmd.add_argument("package", help="Source package name")

    status_cmd = commands.add_parser("status", help="Records with a release in a given status")
    status_cmd.add_argument("major", help="Debian major version, e.g. 12")
    status_cmd.add_argument("package", help="Source package name")
    status_cmd.add_argument("status", help="Release status, e.g. open")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        sync = CorpusSync(
            config_path=args.config,
            batch_size=getattr(args, "batch_size", None)
        )
    except (FileNotFoundError, ConfigurationError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        if args.command == "sync":
            progress = TqdmProgress(disable=args.no_progress or not sync.show_progress)
            metrics = sync.run(progress=progress)

            print("\n" + "=" * 60)
            print("Sync Summary")
            print("=" * 60)
            print(f"Run ID: {metrics.run_id}")
            print(f"Records: {metrics.records_written}")
            print(f"Packages: {metrics.packages_total}")
            print(f"Releases: {metrics.releases_total}")
            print(f"Batches: {metrics.batches_written}")
            print("=" * 60)
            return 0

        sync.db.initialize_schema()
        if args.command == "get":
            print(_dump(sync.engine.get_many_by_id(args.cve_ids)))
        elif args.command == "unfixed":
            print(_dump(sync.engine.get_unfixed(args.major, args.package)))
        elif args.command == "fixed":
            print(_dump(sync.engine.get_fixed(args.major, args.package)))
        else:
            print(_dump(sync.engine.get_by_fix_status(args.major, args.package, args.status)))
        return 0

    except UnsupportedVersionError as e:
        logger.error(f"{e}. Supported versions: {', '.join(sync.engine.resolver.supported_versions())}")
        return 2

    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    finally:
        sync.close()


if __name__ == "__main__":
    sys.exit(main())
