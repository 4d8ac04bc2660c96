#!/usr/bin/env python3
"""
Sample Snapshot CLI Tool

Writes and inspects catalog snapshots so the health reports can be tried
without a SQL Server instance.
"""

import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from db.provider import InMemoryMetadataProvider
from db.seed import build_sample_snapshot
from errors import SnapshotError

app = typer.Typer(help="Column-store health sample snapshot tool")
console = Console()


@app.command()
def create(
    output: Path = typer.Option(Path("snapshots/sample_catalog.json"), "--output", "-o", help="Snapshot file path"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing snapshot"),
) -> None:
    """Write the sample catalog snapshot"""
    if output.exists() and not force:
        console.print(f"[red]Snapshot already exists: {output} (use --force to overwrite)[/red]")
        raise typer.Exit(1)

    # Suppress loguru logs for cleaner output
    logger.remove()

    snapshot = build_sample_snapshot()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(snapshot.model_dump(mode="json"), indent=2), encoding="utf-8")

    console.print(f"[green]Sample snapshot written to {output}[/green]")
    console.print(f"[cyan]{len(snapshot.indexes)} indexes and {len(snapshot.row_groups)} row groups[/cyan]")


@app.command()
def show(
    snapshot: Path = typer.Argument(..., help="Snapshot file to inspect"),
) -> None:
    """Show the indexes and row-group counts stored in a snapshot"""
    logger.remove()

    try:
        provider = InMemoryMetadataProvider.from_snapshot(snapshot)
    except SnapshotError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Snapshot: {snapshot.name}", show_header=True)
    table.add_column("Schema", style="cyan")
    table.add_column("Table", style="cyan")
    table.add_column("Index", style="cyan")
    table.add_column("Type")
    table.add_column("Row Groups", justify="right", style="green")

    for index in provider.list_columnstore_indexes():
        table.add_row(
            index.schema_name,
            index.table_name,
            index.index_name,
            index.type_desc,
            str(len(provider.list_row_groups(index))),
        )

    console.print(table)


if __name__ == "__main__":
    app()
