"""
Generate human-readable sync reports in Markdown format.

Report sections:
- Header with run metadata (ID, timestamp, duration)
- Summary table with corpus sizes and batches written
- Release status distribution
- Data quality check results
- Source health status

Tables are rendered with tabulate in GitHub-flavored Markdown.
"""
from datetime import datetime
from pathlib import Path
from typing import List

from tabulate import tabulate

from .metrics import SyncMetrics
from .quality_checks import QualityCheckResult


class SyncReporter:
    """Generates Markdown reports from sync run metrics."""

    def generate_report(
        self,
        metrics: SyncMetrics,
        quality_results: List[QualityCheckResult]
    ) -> str:
        """
        Generate full sync report in Markdown format.

        Args:
            metrics: SyncMetrics from a completed sync
            quality_results: List of quality check results

        Returns:
            Markdown-formatted report as string
        """
        lines = []

        lines.append("# Corpus Sync Report")
        lines.append(f"**Run ID:** {metrics.run_id}")
        lines.append(f"**Started:** {metrics.started_at.isoformat()}")
        if metrics.completed_at:
            duration = (metrics.completed_at - metrics.started_at).total_seconds()
            lines.append(f"**Duration:** {duration:.1f} seconds")
        lines.append("")

        lines.append("## Summary")
        summary_data = [
            ["Feed Packages", metrics.feed_packages],
            ["Records", metrics.records_total],
            ["Packages", metrics.packages_total],
            ["Releases", metrics.releases_total],
            ["Batch Size", metrics.batch_size],
            ["Batches Written", metrics.batches_written],
            ["Errors", metrics.errors],
        ]
        lines.append(tabulate(summary_data, headers=["Metric", "Value"], tablefmt="github"))
        lines.append("")

        if metrics.status_counts:
            lines.append("## Release Status Distribution")
            status_data = [[k or "(empty)", v] for k, v in sorted(metrics.status_counts.items())]
            lines.append(tabulate(status_data, headers=["Status", "Releases"], tablefmt="github"))
            lines.append("")

        lines.append("## Data Quality Checks")
        quality_data = []
        for qr in quality_results:
            status = "✓" if qr.passed else "✗"
            quality_data.append([status, qr.check_name, qr.message])
        lines.append(tabulate(quality_data, headers=["Status", "Check", "Details"], tablefmt="github"))
        lines.append("")

        if metrics.source_health:
            lines.append("## Source Health")
            health_data = []
            for source, health in metrics.source_health.items():
                status = "✓" if health.get("healthy", False) else "✗"
                health_data.append([status, source, health.get("records", 0)])
            lines.append(tabulate(health_data, headers=["Status", "Source", "Packages"], tablefmt="github"))
            lines.append("")

        return "\n".join(lines)

    def save_report(self, report: str, output_dir: Path) -> Path:
        """
        Save report to file with timestamp.

        Args:
            report: Markdown report content
            output_dir: Directory to save report in

        Returns:
            Path to saved report file
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        filepath = output_dir / f"sync-report-{timestamp}.md"
        filepath.write_text(report, encoding="utf-8")
        return filepath
