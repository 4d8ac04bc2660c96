"""
Column-store Index Health CLI

Diagnoses fragmentation in clustered and non-clustered column-store indexes
and produces the ALTER INDEX ... REORGANIZE commands that compact them:
- Row-group fragmentation reports (all or fragmented only)
- Per-index summaries
- Maintenance command generation (table, JSON, CSV or a T-SQL script)
- Optional execution of the generated commands
- Catalog snapshots for offline analysis

Execution supports --dry-run (default) and --apply modes.
"""

import csv
import io
import json
import time
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import get_settings
from db.models import Action, FragmentationRow, IndexFragmentationSummary, MaintenanceCommand
from db.provider import InMemoryMetadataProvider, MetadataProvider, export_snapshot
from errors import ColumnStoreHealthError, UnsupportedActionError
from health.commands import command_sort_key, render_script
from health.executor import STATUS_FAILED, STATUS_SUCCEEDED, ReorganizeExecutor, count_failures
from health.service import ColumnStoreHealthService, parse_action

app = typer.Typer(
    name="csi-health",
    help="Column-store index fragmentation reports and reorganize maintenance",
    rich_markup_mode="rich"
)
console = Console()

STATUS_STYLES = {STATUS_SUCCEEDED: "green", STATUS_FAILED: "red"}


class OutputFormat(str, Enum):
    table = "table"
    json = "json"
    csv = "csv"
    sql = "sql"


# Global options that apply to all commands
SchemaOption = typer.Option(
    None,
    "--schema",
    "-s",
    help="Exact schema name filter (default: all schemas)"
)
TableOption = typer.Option(
    None,
    "--table",
    "-t",
    help="Exact table name filter (default: all tables)"
)
SnapshotOption = typer.Option(
    None,
    "--snapshot",
    help="Read metadata from a JSON catalog snapshot instead of a live server"
)
ConnectionStringOption = typer.Option(
    None,
    "--connection-string",
    help="ODBC connection string (default: from config)"
)
RunIdOption = typer.Option(
    None,
    "--run-id",
    help="Run ID for structured logging"
)
FormatOption = typer.Option(
    OutputFormat.table,
    "--format",
    "-f",
    help="Output format"
)
DryRunOption = typer.Option(
    True,
    "--dry-run/--apply",
    help="Show what would be done (dry-run) or execute the commands (apply)"
)
MinFragmentationOption = typer.Option(
    None,
    "--min-fragmentation",
    min=0.0,
    max=100.0,
    help="Minimum fragmentation percent for --fragmented-only (default: from config)"
)


class CatalogContext:
    """Context manager that opens a metadata provider for one command"""

    def __init__(self,
                 snapshot: Optional[Path] = None,
                 connection_string: Optional[str] = None,
                 run_id: Optional[str] = None):
        self.snapshot = snapshot
        self.connection_string = connection_string
        self.run_id = run_id or f"csi_{int(time.time())}"
        self.dao = None

        # Setup structured logging with run ID
        settings = get_settings()
        if not settings.test_mode:
            settings.setup_logging(self.run_id)

    def __enter__(self) -> MetadataProvider:
        """Open the snapshot or connect to the live catalog"""
        if self.snapshot is not None:
            logger.info(f"Opening snapshot: {self.snapshot}")
            return InMemoryMetadataProvider.from_snapshot(self.snapshot)

        from db.dao import SqlServerCatalogDAO

        settings = get_settings()
        self.dao = SqlServerCatalogDAO(
            self.connection_string or settings.build_connection_string(),
            login_timeout=settings.login_timeout,
            query_timeout=settings.query_timeout,
        )
        self.dao.connect()
        return self.dao

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Close the live connection if one was opened"""
        if self.dao is not None:
            self.dao.close()


def fail(message: str, code: int = 1) -> NoReturn:
    logger.error(message)
    console.print(f"[red]✗[/red] {escape(message)}")
    raise typer.Exit(code)


def rows_to_csv(rows: Sequence[dict]) -> str:
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), lineterminator="\n")
    writer.writeheader()
    # Percentages keep the two decimal places of the report
    writer.writerows(
        {key: f"{value:.2f}" if isinstance(value, float) else value for key, value in row.items()}
        for row in rows
    )
    return buffer.getvalue()


def emit_records(records: Sequence[dict], output_format: OutputFormat) -> bool:
    """Print JSON or CSV output. Returns False when the caller should render a table"""
    if output_format == OutputFormat.json:
        typer.echo(json.dumps(list(records), indent=2))
        return True
    if output_format == OutputFormat.csv:
        typer.echo(rows_to_csv(records), nl=False)
        return True
    return False


def print_report_table(rows: List[FragmentationRow]) -> None:
    if not rows:
        console.print("[yellow]No column-store row groups matched[/yellow]")
        return

    table = Table(title="Column-store Row Group Fragmentation", show_header=True)
    table.add_column("Schema", style="cyan")
    table.add_column("Table", style="cyan")
    table.add_column("Index", style="cyan")
    table.add_column("Type")
    table.add_column("Row Group", justify="right")
    table.add_column("State")
    table.add_column("Total Rows", justify="right")
    table.add_column("Deleted Rows", justify="right")
    table.add_column("Fragmentation %", justify="right")
    table.add_column("Full %", justify="right")

    for row in rows:
        frag_style = "red" if row.fragmentation_percent >= 20 else "yellow" if row.deleted_rows > 0 else "green"
        table.add_row(
            escape(row.schema_name),
            escape(row.table_name),
            escape(row.index_name),
            row.type_desc,
            str(row.row_group_id),
            row.state_desc,
            str(row.total_rows),
            str(row.deleted_rows),
            f"[{frag_style}]{row.fragmentation_percent:.2f}[/{frag_style}]",
            f"{row.percent_full:.2f}",
        )

    console.print(table)


def print_summary_table(summaries: List[IndexFragmentationSummary]) -> None:
    if not summaries:
        console.print("[yellow]No column-store indexes matched[/yellow]")
        return

    table = Table(title="Column-store Index Summary", show_header=True)
    table.add_column("Schema", style="cyan")
    table.add_column("Table", style="cyan")
    table.add_column("Index", style="cyan")
    table.add_column("Row Groups", justify="right")
    table.add_column("Fragmented", justify="right")
    table.add_column("Total Rows", justify="right")
    table.add_column("Deleted Rows", justify="right")
    table.add_column("Fragmentation %", justify="right", style="green")

    for summary in summaries:
        table.add_row(
            escape(summary.schema_name),
            escape(summary.table_name),
            escape(summary.index_name),
            str(summary.row_group_count),
            str(summary.fragmented_row_groups),
            str(summary.total_rows),
            str(summary.deleted_rows),
            f"{summary.fragmentation_percent:.2f}",
        )

    console.print(table)


def print_commands_table(commands: List[MaintenanceCommand]) -> None:
    if not commands:
        console.print("[yellow]No column-store indexes matched[/yellow]")
        return

    table = Table(title="Reorganize Commands", show_header=True)
    table.add_column("Schema", style="cyan")
    table.add_column("Table", style="cyan")
    table.add_column("Index", style="cyan")
    table.add_column("Reorganize Command", style="green")
    table.add_column("Final Reorganize Command", style="green")

    for command in commands:
        table.add_row(
            escape(command.schema_name),
            escape(command.table_name),
            escape(command.index_name),
            escape(command.reorganize_command),
            escape(command.final_reorganize_command),
        )

    console.print(table)


def output_report(rows: List[FragmentationRow], output_format: OutputFormat) -> None:
    if not emit_records([row.to_dict() for row in rows], output_format):
        print_report_table(rows)


def output_commands(commands: List[MaintenanceCommand], output_format: OutputFormat) -> None:
    if output_format == OutputFormat.sql:
        typer.echo(render_script(commands), nl=False)
        return
    if not emit_records([command.to_dict() for command in commands], output_format):
        print_commands_table(commands)


@app.command()
def report(
    schema_name: Optional[str] = SchemaOption,
    table_name: Optional[str] = TableOption,
    fragmented_only: bool = typer.Option(
        False,
        "--fragmented-only",
        help="Only show row groups that contain deleted rows"
    ),
    min_fragmentation: Optional[float] = MinFragmentationOption,
    summary: bool = typer.Option(
        False,
        "--summary",
        help="Aggregate row groups into one line per index"
    ),
    output_format: OutputFormat = FormatOption,
    snapshot: Optional[Path] = SnapshotOption,
    connection_string: Optional[str] = ConnectionStringOption,
    run_id: Optional[str] = RunIdOption,
) -> None:
    """
    Report row-group fragmentation for column-store indexes.
    """
    if output_format == OutputFormat.sql:
        fail("The sql format is only available for the commands command", code=2)

    threshold = min_fragmentation if min_fragmentation is not None else get_settings().min_fragmentation

    try:
        with CatalogContext(snapshot, connection_string, run_id) as provider:
            service = ColumnStoreHealthService(provider)
            if summary:
                summaries = service.index_summaries(schema_name, table_name, fragmented_only, threshold)
                if not emit_records([s.to_dict() for s in summaries], output_format):
                    print_summary_table(summaries)
            else:
                rows = service.fragmentation_report(schema_name, table_name, fragmented_only, threshold)
                output_report(rows, output_format)
    except ColumnStoreHealthError as e:
        fail(f"Report failed: {e}")


@app.command()
def commands(
    schema_name: Optional[str] = SchemaOption,
    table_name: Optional[str] = TableOption,
    output_format: OutputFormat = FormatOption,
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write a T-SQL script to this file instead of printing"
    ),
    snapshot: Optional[Path] = SnapshotOption,
    connection_string: Optional[str] = ConnectionStringOption,
    run_id: Optional[str] = RunIdOption,
) -> None:
    """
    Generate ALTER INDEX ... REORGANIZE commands for column-store indexes.

    Commands are generated for every matching index regardless of fragmentation.
    Nothing is executed; see the reorganize command for that.
    """
    try:
        with CatalogContext(snapshot, connection_string, run_id) as provider:
            generated = ColumnStoreHealthService(provider).maintenance_commands(schema_name, table_name)
    except ColumnStoreHealthError as e:
        fail(f"Command generation failed: {e}")

    if output is not None:
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(render_script(generated), encoding="utf-8")
        except OSError as e:
            fail(f"Cannot write script {output}: {e}")
        logger.info(f"Reorganize script written: {output}")
        console.print(f"[green]✓[/green] Wrote {len(generated)} index commands to {escape(str(output))}")
        return

    output_commands(generated, output_format)


@app.command()
def run(
    schema_name: Optional[str] = SchemaOption,
    table_name: Optional[str] = TableOption,
    action: int = typer.Option(
        0,
        "--action",
        "-a",
        help="0 = full report, 1 = fragmented-only report, 2 = generate commands"
    ),
    output_format: OutputFormat = FormatOption,
    snapshot: Optional[Path] = SnapshotOption,
    connection_string: Optional[str] = ConnectionStringOption,
    run_id: Optional[str] = RunIdOption,
) -> None:
    """
    Run by action code with optional schema and table filters.
    """
    try:
        selected = parse_action(action)
    except UnsupportedActionError as e:
        fail(str(e), code=2)

    if output_format == OutputFormat.sql and selected != Action.GENERATE_COMMANDS:
        fail("The sql format is only available for action 2", code=2)

    try:
        with CatalogContext(snapshot, connection_string, run_id) as provider:
            result = ColumnStoreHealthService(provider).run(selected, schema_name, table_name)
    except ColumnStoreHealthError as e:
        fail(f"Action {action} failed: {e}")

    if selected == Action.GENERATE_COMMANDS:
        output_commands(result, output_format)  # type: ignore[arg-type]
    else:
        output_report(result, output_format)  # type: ignore[arg-type]


@app.command()
def reorganize(
    schema_name: Optional[str] = SchemaOption,
    table_name: Optional[str] = TableOption,
    fragmented_only: bool = typer.Option(
        False,
        "--fragmented-only",
        help="Only reorganize indexes that have row groups with deleted rows"
    ),
    min_fragmentation: Optional[float] = MinFragmentationOption,
    dry_run: bool = DryRunOption,
    snapshot: Optional[Path] = SnapshotOption,
    connection_string: Optional[str] = ConnectionStringOption,
    run_id: Optional[str] = RunIdOption,
) -> None:
    """
    Run the compress pass then the final reorganize pass for each index.

    Defaults to a dry run that only lists the statements.
    """
    if not dry_run and snapshot is not None:
        fail("--apply needs a live connection and cannot be used with --snapshot")

    threshold = min_fragmentation if min_fragmentation is not None else get_settings().min_fragmentation

    try:
        with CatalogContext(snapshot, connection_string, run_id) as provider:
            service = ColumnStoreHealthService(provider)
            planned = service.maintenance_commands(schema_name, table_name)

            if fragmented_only:
                fragmented = {
                    (s.schema_name, s.table_name, s.index_name)
                    for s in service.index_summaries(schema_name, table_name, True, threshold)
                }
                planned = [c for c in planned if command_sort_key(c) in fragmented]

            if not planned:
                console.print("[green]✓[/green] No column-store indexes need reorganizing")
                return

            executor = ReorganizeExecutor(getattr(provider, "execute_command", None))
            results = executor.run(planned, dry_run=dry_run)
    except ColumnStoreHealthError as e:
        fail(f"Reorganize failed: {e}")

    if dry_run:
        console.print(f"\n[yellow]Reorganize Plan (DRY RUN) - {len(planned)} indexes:[/yellow]")
        for result in results:
            console.print(f"  {escape(result.command)}", soft_wrap=True)
        return

    table = Table(title="Reorganize Results", show_header=True)
    table.add_column("Index", style="cyan")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Time (ms)", justify="right")

    for result in results:
        status_style = STATUS_STYLES.get(result.status, "yellow")
        table.add_row(
            escape(f"{result.schema_name}.{result.table_name}.{result.index_name}"),
            result.step,
            f"[{status_style}]{result.status}[/{status_style}]",
            f"{result.duration_ms:.0f}" if result.duration_ms is not None else "-",
        )

    console.print(table)

    failures = count_failures(results)
    if failures:
        for result in results:
            if result.status == STATUS_FAILED:
                console.print(f"[red]✗[/red] {escape(result.command)}: {escape(result.error or '')}", soft_wrap=True)
        fail(f"{failures} reorganize statements failed")

    console.print(f"[green]✓[/green] Reorganized {len(planned)} indexes")
    logger.info(f"Reorganized {len(planned)} column-store indexes")


@app.command()
def snapshot(
    schema_name: Optional[str] = SchemaOption,
    table_name: Optional[str] = TableOption,
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Snapshot file path (default: timestamped file in the snapshot directory)"
    ),
    source_snapshot: Optional[Path] = SnapshotOption,
    connection_string: Optional[str] = ConnectionStringOption,
    run_id: Optional[str] = RunIdOption,
) -> str:
    """
    Export column-store index and row-group metadata to a JSON snapshot.

    Returns the path to the created snapshot file.
    """
    if output is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output = get_settings().get_snapshot_dir() / f"catalog_{timestamp}.json"

    try:
        with CatalogContext(source_snapshot, connection_string, run_id) as provider:
            source = str(source_snapshot) if source_snapshot is not None else get_settings().database
            captured = export_snapshot(provider, output, schema_name, table_name, source=source)
    except ColumnStoreHealthError as e:
        fail(f"Snapshot failed: {e}")

    console.print(
        f"[green]✓[/green] Snapshot created: {escape(str(output))} "
        f"({len(captured.indexes)} indexes, {len(captured.row_groups)} row groups)"
    )
    return str(output)


if __name__ == "__main__":
    app()
