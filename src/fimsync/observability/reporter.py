"""Sync Report Generator.

Generates JSON reports for sync runs.
"""

import json
from collections import Counter
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import structlog

from ..models.results import ImportResult, RowStatus

logger = structlog.get_logger(__name__)


@dataclass
class ImportReport:
    """
    Structured report data for a sync run.

    Attributes:
        session_id: Session identifier
        status: Final status (completed, partial, failed)
        start_time: Start timestamp (ISO 8601)
        end_time: End timestamp (ISO 8601)
        duration_seconds: Total duration
        csv_file: Path to the input file
        dry_run: Whether requests were built without being submitted
        total_rows: Rows processed
        succeeded_rows: Rows whose request was submitted (or built, in dry run)
        skipped_rows: Rows skipped with a reason
        failed_rows: Rows whose submission failed
        rows_per_second: Throughput metric
        avg_row_duration_ms: Average latency
        max_row_duration_ms: Max latency
        by_state: Row counts per state
        by_object_type: Row counts per object type
        issues: Skipped and failed rows with their reason
        metrics: Counter and timing summary from the metrics collector
    """

    session_id: str
    status: str
    start_time: str
    end_time: str
    duration_seconds: float
    csv_file: str
    dry_run: bool
    total_rows: int
    succeeded_rows: int
    skipped_rows: int
    failed_rows: int
    rows_per_second: float
    avg_row_duration_ms: float
    max_row_duration_ms: float
    by_state: dict[str, int] = field(default_factory=dict)
    by_object_type: dict[str, int] = field(default_factory=dict)
    issues: list[dict[str, Any]] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)


class ReportGenerator:
    """Build and write reports for sync runs."""

    def generate_report(
        self,
        result: ImportResult,
        csv_file: Path,
        dry_run: bool,
        metrics: dict[str, Any] | None = None,
    ) -> ImportReport:
        """
        Generate report object from a run result.

        Args:
            result: Completed run result
            csv_file: Input file path
            dry_run: Dry run mode
            metrics: Metrics summary (MetricsCollector.get_summary())

        Returns:
            ImportReport object
        """
        outcomes = result.outcomes
        duration = result.duration_seconds

        durations = [o.duration_ms for o in outcomes if o.duration_ms is not None]
        avg_latency = sum(durations) / len(durations) if durations else 0.0
        max_latency = max(durations) if durations else 0.0

        issues = [
            {
                "line": o.line_number,
                "status": o.status.value,
                "state": o.state.value,
                "object_type": o.object_type,
                "target": o.target_identifier,
                "reason": o.message,
            }
            for o in outcomes
            if o.status != RowStatus.SUCCEEDED
        ]

        status = "completed"
        if result.failed > 0:
            status = "partial" if result.succeeded > 0 else "failed"

        return ImportReport(
            session_id=result.session_id,
            status=status,
            start_time=result.started_at.isoformat() if result.started_at else "",
            end_time=result.completed_at.isoformat() if result.completed_at else "",
            duration_seconds=duration,
            csv_file=str(csv_file),
            dry_run=dry_run,
            total_rows=result.total_rows,
            succeeded_rows=result.succeeded,
            skipped_rows=result.skipped,
            failed_rows=result.failed,
            rows_per_second=result.total_rows / duration if duration > 0 else 0.0,
            avg_row_duration_ms=avg_latency,
            max_row_duration_ms=max_latency,
            by_state=dict(Counter(o.state.value for o in outcomes)),
            by_object_type=dict(Counter(o.object_type for o in outcomes)),
            issues=issues,
            metrics=metrics or {},
        )

    def write_json_report(self, report: ImportReport, output_path: Path) -> None:
        """
        Write report as JSON.

        Args:
            report: Sync report
            output_path: Output file path
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(asdict(report), f, indent=2)

        logger.info("JSON report written", path=str(output_path))
