"""
Import Runner - Encapsulates the execution logic for sync sessions.

This module provides a reusable runner for executing a sync session from a
CSV file. It handles:
1. Reading the header
2. Connecting to the FIM Service
3. Running the row pipeline with a progress display
4. Summary output and the optional JSON report
"""

import uuid
from datetime import datetime
from pathlib import Path

import structlog
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ..config import ImporterConfig
from ..core.parser import CSVParser
from ..fim.client import FIMClient
from ..models.results import ImportResult, RowOutcome, RowStatus
from ..observability.metrics import get_global_collector
from ..observability.reporter import ReportGenerator
from ..utils.exceptions import ImporterError
from .pipeline import ImportPipeline

logger = structlog.get_logger(__name__)

MAX_ISSUES_SHOWN = 10


class ImportRunner:
    """
    Executes a sync session from start to finish.
    """

    def __init__(self, config: ImporterConfig, console: Console) -> None:
        """
        Initialize ImportRunner.

        Args:
            config: Importer configuration
            console: Rich console for output
        """
        self.config = config
        self.console = console

    async def run_session(
        self,
        csv_file: Path,
        report_path: Path | None = None,
        session_id: str | None = None,
    ) -> int:
        """
        Run a sync session.

        Args:
            csv_file: Path to CSV file
            report_path: Optional path for a JSON report
            session_id: Optional session identifier

        Returns:
            int: Exit code (0 = every row processed, 1 = fatal error)
        """
        session_id = session_id or f"sess_{uuid.uuid4().hex[:8]}"
        dry_run = self.config.policy.dry_run
        result = ImportResult(session_id=session_id, started_at=datetime.now())

        self.console.print(f"Session ID: [cyan]{session_id}[/cyan]")
        self.console.print(f"Mode: [yellow]{'DRY RUN' if dry_run else 'LIVE'}[/yellow]")

        if self.config.fim is None:
            self.console.print(
                "[red]Error: FIM Service connection is not configured "
                "(use --config, --uri or FIM_URL/FIM_USERNAME/FIM_PASSWORD)[/red]"
            )
            return 1

        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
        )

        exit_code = 0
        async with FIMClient(self.config.fim) as client:
            with progress:
                try:
                    task = progress.add_task("[cyan]Reading header...", total=None)
                    parser = CSVParser(csv_file, self.config.csv.delimiter)
                    header = parser.header
                    progress.update(
                        task, completed=True, description=f"[green]DONE: {len(header)} columns"
                    )

                    task = progress.add_task("[cyan]Connecting to FIM Service...", total=None)
                    await client.ping()
                    progress.update(task, completed=True, description="[green]DONE: Connected")

                    task = progress.add_task("[cyan]Processing rows...", total=None)

                    def on_row(outcome: RowOutcome) -> None:
                        result.outcomes.append(outcome)
                        progress.update(
                            task, description=f"[cyan]Processing rows... line {outcome.line_number}"
                        )

                    pipeline = ImportPipeline(client, self.config)
                    await pipeline.run(parser.iter_rows(), header, on_row=on_row)
                    progress.update(
                        task,
                        completed=True,
                        description=f"[green]DONE: Processed {result.total_rows} rows",
                    )

                except (ImporterError, FileNotFoundError) as e:
                    logger.error("Sync aborted", error=str(e), rows_processed=result.total_rows)
                    progress.console.print(f"[bold red]Error:[/bold red] {e}")
                    exit_code = 1

        result.completed_at = datetime.now()
        self._print_summary(result, exit_code)

        if report_path:
            generator = ReportGenerator()
            report = generator.generate_report(
                result, csv_file, dry_run, get_global_collector().get_summary()
            )
            generator.write_json_report(report, report_path)
            self.console.print(f"\nReport: [cyan]{report_path}[/cyan]")

        return exit_code

    def _print_summary(self, result: ImportResult, exit_code: int) -> None:
        """Print the summary table and the first skipped/failed rows."""
        if exit_code:
            self.console.print(
                f"\n[bold red]ABORTED after {result.total_rows} rows. "
                "Rows already submitted were not rolled back.[/bold red]\n"
            )
        elif result.failed == 0:
            self.console.print("\n[bold green]SUCCESS: Sync completed![/bold green]\n")
        else:
            self.console.print("\n[bold yellow]WARNING: Sync completed with errors[/bold yellow]\n")

        table = Table(title="Sync Summary")
        table.add_column("Status", style="cyan")
        table.add_column("Rows", justify="right")
        table.add_row("[green]Succeeded[/green]", str(result.succeeded))
        table.add_row("[yellow]Skipped[/yellow]", str(result.skipped))
        table.add_row("[red]Failed[/red]", str(result.failed))
        table.add_row("[bold]Total[/bold]", str(result.total_rows))
        self.console.print(table)
        self.console.print(f"Duration: {result.duration_seconds:.2f} seconds")

        issues = [o for o in result.outcomes if o.status != RowStatus.SUCCEEDED]
        if issues:
            self.console.print("\n[yellow]Skipped and failed rows:[/yellow]")
            for outcome in issues[:MAX_ISSUES_SHOWN]:
                color = "red" if outcome.status == RowStatus.FAILED else "yellow"
                self.console.print(
                    f"  - Line {outcome.line_number} [{color}]{outcome.status.value}[/{color}]: "
                    f"{outcome.message}"
                )
            if len(issues) > MAX_ISSUES_SHOWN:
                self.console.print(f"  ... and {len(issues) - MAX_ISSUES_SHOWN} more")
