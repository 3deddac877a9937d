"""Command-line interface for the FIM CSV Sync tool."""

import asyncio
import dataclasses
import os
from collections import Counter
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import (
    CSVFormatConfig,
    DefaultsConfig,
    EmptyValuePolicy,
    FIMConfig,
    ImporterConfig,
    ReferenceFailurePolicy,
    ReferenceMode,
    load_config,
)
from .constants import RESERVED_COLUMNS, STATE_COLUMN
from .core.change_builder import ensure_match_attribute
from .core.classifier import RowClassifier, parse_state
from .core.parser import CSVParser
from .core.references import looks_like_reference, parse_reference
from .models.changes import State
from .utils.exceptions import ImporterError

app = typer.Typer(
    name="fim-sync",
    help="FIM CSV Sync - Create, update and delete FIM Service objects from CSV files",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)

MAX_ERRORS_SHOWN = 10


def _load(config_file: Path | None) -> ImporterConfig:
    """Load configuration, turning problems into a clean exit."""
    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    if config_file:
        console.print(f"[green]OK:[/green] Configuration loaded from {config_file}\n")
    return config


def apply_overrides(
    config: ImporterConfig,
    object_type: str | None = None,
    state: str | None = None,
    operation: str | None = None,
    match_attribute: str | None = None,
    delimiter: str | None = None,
    multi_value_delimiter: str | None = None,
    reference_delimiter: str | None = None,
    uri: str | None = None,
    empty_values: EmptyValuePolicy | None = None,
    reference_mode: ReferenceMode | None = None,
    on_reference_failure: ReferenceFailurePolicy | None = None,
    schema_cache: bool = False,
    dry_run: bool = False,
) -> ImporterConfig:
    """
    Layer command-line options over a loaded configuration.

    Options left at None keep the configured value.

    Raises:
        ValueError: If the resulting delimiters are invalid, or --uri is given
            without credentials
    """

    def pick(value, current):
        return current if value is None else value

    config.defaults = DefaultsConfig(
        object_type=pick(object_type, config.defaults.object_type),
        state=pick(state, config.defaults.state),
        operation=pick(operation, config.defaults.operation),
        match_attribute=pick(match_attribute, config.defaults.match_attribute),
    )
    config.csv = CSVFormatConfig(
        delimiter=pick(delimiter, config.csv.delimiter),
        multi_value_delimiter=pick(multi_value_delimiter, config.csv.multi_value_delimiter),
        reference_delimiter=pick(reference_delimiter, config.csv.reference_delimiter),
    )
    config.policy = dataclasses.replace(
        config.policy,
        empty_values=pick(empty_values, config.policy.empty_values),
        reference_mode=pick(reference_mode, config.policy.reference_mode),
        reference_failure=pick(on_reference_failure, config.policy.reference_failure),
        schema_cache=schema_cache or config.policy.schema_cache,
        dry_run=dry_run or config.policy.dry_run,
    )

    if uri:
        if config.fim is not None:
            config.fim = dataclasses.replace(config.fim, base_url=uri)
        else:
            username = os.environ.get("FIM_USERNAME", "")
            password = os.environ.get("FIM_PASSWORD", "")
            if not username or not password:
                raise ValueError("--uri needs FIM_USERNAME and FIM_PASSWORD to be set")
            config.fim = FIMConfig(base_url=uri, username=username, password=password)

    return config


@app.command()
def apply(
    csv_file: Path = typer.Argument(..., help="CSV file to sync", exists=True),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    object_type: str | None = typer.Option(
        None, "--object-type", help="Default object type (default: Person)"
    ),
    state: str | None = typer.Option(
        None, "--state", help="Default state: Create, Put or Delete (default: Create)"
    ),
    operation: str | None = typer.Option(
        None,
        "--operation",
        help="Default multi-value operation: Add, Replace or Delete (default: Add)",
    ),
    match_attribute: str | None = typer.Option(
        None, "--match-attribute", help="Column used to find Put/Delete targets (default: ObjectID)"
    ),
    delimiter: str | None = typer.Option(None, "--delimiter", help="Field delimiter"),
    multi_value_delimiter: str | None = typer.Option(
        None, "--multi-value-delimiter", help="Delimiter between values of one field"
    ),
    reference_delimiter: str | None = typer.Option(
        None, "--reference-delimiter", help="Delimiter inside (Type|Attr|Value)"
    ),
    uri: str | None = typer.Option(None, "--uri", help="FIM REST gateway base URL"),
    empty_values: EmptyValuePolicy | None = typer.Option(
        None, "--empty-values", help="Empty field handling: omit or clear"
    ),
    reference_mode: ReferenceMode | None = typer.Option(
        None, "--reference-mode", help="Resolve references by query or deferred to the service"
    ),
    on_reference_failure: ReferenceFailurePolicy | None = typer.Option(
        None, "--on-reference-failure", help="Abort the run or skip the row"
    ),
    schema_cache: bool = typer.Option(
        False, "--schema-cache", help="Persistent schema cache (not supported, ignored)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Build requests without submitting"),
    report: Path | None = typer.Option(None, "--report", help="Write a JSON report to PATH"),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log verbosity: TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR",
    ),
    log_filter: str | None = typer.Option(
        None,
        "--log-filter",
        help="Filter logs by component (comma-separated, e.g., 'translator,pipeline')",
    ),
) -> None:
    """
    Apply changes from CSV to the FIM Service.

    Each row becomes one Create, Modify or Delete request. Rows whose target
    cannot be found (or is ambiguous) are skipped; the run exits 0 as long as
    every row was processed.

    Examples:
        fim-sync apply people.csv --dry-run
        fim-sync apply people.csv --state Put --match-attribute EmployeeID
        fim-sync apply people.csv --config prod.yaml --report report.json
    """
    from .execution.runner import ImportRunner
    from .observability import configure_logging

    config = _load(config_file)
    try:
        config = apply_overrides(
            config,
            object_type=object_type,
            state=state,
            operation=operation,
            match_attribute=match_attribute,
            delimiter=delimiter,
            multi_value_delimiter=multi_value_delimiter,
            reference_delimiter=reference_delimiter,
            uri=uri,
            empty_values=empty_values,
            reference_mode=reference_mode,
            on_reference_failure=on_reference_failure,
            schema_cache=schema_cache,
            dry_run=dry_run,
        )
    except ValueError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=log_level or config.logging.level,
        json_logs=config.logging.format == "json",
        log_file=config.logging.file,
        log_filter=log_filter,
    )

    console.print(
        Panel.fit(
            f"[bold blue]FIM CSV Sync[/bold blue]\n\n"
            f"CSV File: {csv_file}\n"
            f"Object Type: [cyan]{config.defaults.object_type}[/cyan]\n"
            f"State: [cyan]{config.defaults.state}[/cyan]  "
            f"Match: [cyan]{config.defaults.match_attribute}[/cyan]\n"
            f"References: [cyan]{config.policy.reference_mode.value}[/cyan] "
            f"(on failure: {config.policy.reference_failure.value})\n"
            f"Mode: [yellow]{'DRY RUN' if config.policy.dry_run else 'EXECUTE'}[/yellow]",
            border_style="blue",
        )
    )

    if config.policy.dry_run:
        console.print("[yellow]WARNING: DRY RUN MODE - No changes will be submitted[/yellow]\n")

    runner = ImportRunner(config, console)
    exit_code = asyncio.run(runner.run_session(csv_file=csv_file, report_path=report))
    if exit_code != 0:
        raise typer.Exit(code=exit_code)


@app.command()
def validate(
    csv_file: Path = typer.Argument(..., help="CSV file to validate", exists=True),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    object_type: str | None = typer.Option(None, "--object-type", help="Default object type"),
    state: str | None = typer.Option(None, "--state", help="Default state"),
    operation: str | None = typer.Option(None, "--operation", help="Default operation"),
    match_attribute: str | None = typer.Option(
        None, "--match-attribute", help="Column used to find Put/Delete targets"
    ),
    delimiter: str | None = typer.Option(None, "--delimiter", help="Field delimiter"),
    multi_value_delimiter: str | None = typer.Option(
        None, "--multi-value-delimiter", help="Delimiter between values of one field"
    ),
    reference_delimiter: str | None = typer.Option(
        None, "--reference-delimiter", help="Delimiter inside (Type|Attr|Value)"
    ),
) -> None:
    """
    Validate a CSV file without contacting the FIM Service.

    Checks:
    - Header present, no duplicate columns
    - Match attribute column present when Put/Delete rows are possible
    - Every row's state and operation
    - Syntax of every value shaped like a reference expression

    Examples:
        fim-sync validate people.csv
        fim-sync validate people.csv --state Put --match-attribute EmployeeID
    """
    console.print(f"\n[bold blue]Validating CSV:[/bold blue] {csv_file}\n")

    config = _load(config_file)
    try:
        config = apply_overrides(
            config,
            object_type=object_type,
            state=state,
            operation=operation,
            match_attribute=match_attribute,
            delimiter=delimiter,
            multi_value_delimiter=multi_value_delimiter,
            reference_delimiter=reference_delimiter,
        )
    except ValueError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    classifier = RowClassifier()
    errors: list[ImporterError] = []
    counts: Counter[tuple[str, str]] = Counter()
    rows = 0

    try:
        parser = CSVParser(csv_file, config.csv.delimiter)
        header = parser.header
        if STATE_COLUMN in header or parse_state(config.defaults.state) != State.CREATE:
            ensure_match_attribute(header, config.defaults.match_attribute)

        for row in parser.iter_rows():
            rows += 1
            try:
                classification = classifier.classify(row, header, config.defaults)
                counts[(classification.object_type, classification.state.value)] += 1
                for column, value in row.items():
                    if column in RESERVED_COLUMNS or value is None:
                        continue
                    for piece in value.split(config.csv.multi_value_delimiter):
                        if looks_like_reference(piece):
                            parse_reference(
                                piece, config.csv.reference_delimiter, column, row.line_number
                            )
            except ImporterError as e:
                errors.append(e)
    except ImporterError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    if errors:
        console.print(f"[yellow]WARNING: Found {len(errors)} validation errors:[/yellow]\n")
        for error in errors[:MAX_ERRORS_SHOWN]:
            console.print(f"  - {error}")
        if len(errors) > MAX_ERRORS_SHOWN:
            console.print(f"  ... and {len(errors) - MAX_ERRORS_SHOWN} more errors")
        console.print("\n[red]ERROR: Validation failed[/red]")
        raise typer.Exit(code=1)

    console.print("[green]PASS: Validation successful![/green]")
    console.print(f"  Total rows: {rows}")

    table = Table(title="Summary by Object Type")
    table.add_column("Object Type", style="cyan")
    table.add_column("State", style="magenta")
    table.add_column("Count", justify="right", style="green")
    for (obj_type, row_state), count in sorted(counts.items()):
        table.add_row(obj_type, row_state, str(count))
    console.print("\n", table)


@app.command()
def schema(
    object_type: str = typer.Argument(..., help="Object type, e.g. Person"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    uri: str | None = typer.Option(None, "--uri", help="FIM REST gateway base URL"),
) -> None:
    """
    Show the attributes bound to an object type.

    Examples:
        fim-sync schema Person
        fim-sync schema Group --config prod.yaml
    """
    from .core.schema import SchemaRegistry
    from .fim.client import FIMClient

    config = _load(config_file)
    try:
        config = apply_overrides(config, uri=uri)
    except ValueError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    if config.fim is None:
        console.print("[red]ERROR: FIM Service connection is not configured[/red]")
        raise typer.Exit(code=1)

    async def fetch():
        async with FIMClient(config.fim) as client:
            return await SchemaRegistry(client).get_schema(object_type)

    try:
        object_schema = asyncio.run(fetch())
    except ImporterError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title=f"{object_type} attributes")
    table.add_column("Name", style="cyan")
    table.add_column("Data Type")
    table.add_column("Multivalued", justify="center")
    table.add_column("Kind", style="dim")
    for descriptor in sorted(object_schema.bound_attributes(), key=lambda d: d.name):
        table.add_row(
            descriptor.name,
            descriptor.data_type.value,
            "yes" if descriptor.multivalued else "",
            descriptor.kind.value,
        )
    console.print(table)


@app.command()
def version() -> None:
    """Show version information and features."""
    console.print(
        Panel.fit(
            "[bold]FIM CSV Sync[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Core Features:[/bold]\n"
            "- Schema-driven row translation\n"
            "- Per-row !ObjectType, !State and !Operation overrides\n"
            "- Reference resolution by query or deferred Resolve objects\n"
            "- Match-attribute target lookup for Put and Delete\n"
            "- Dry run and JSON reports\n\n"
            "[dim]FIM Service REST gateway (api/v2)[/dim]",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
