"""CLI entry point for visage."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from visage.errors import CheckAborted, VisageError
from visage.models.config import VisageConfig, resolve_config_path
from visage.models.regression import RegressionStatus
from visage.orchestrator import Orchestrator

console = Console()

STATUS_STYLES = {
    RegressionStatus.CREATED: "blue",
    RegressionStatus.PASSED: "green",
    RegressionStatus.FAILED: "red",
    RegressionStatus.SKIPPED: "yellow",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression checks for component stories."""
    setup_logging(verbose)


@cli.command()
def check() -> None:
    """Render every story and compare it against its baseline."""
    try:
        config_path = resolve_config_path(Path.cwd(), Path.home())
        cfg = VisageConfig.load(config_path)
        results = Orchestrator(cfg).check()
    except CheckAborted as e:
        console.print(f"[red]Check aborted during {e.stage}: {e}[/red]")
        console.print(f"{len(e.results)} stories were checked before the failure; "
                      "no results are reported for an aborted run.")
        sys.exit(1)
    except VisageError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    table = Table(title="Visual Check")
    table.add_column("Component", style="bold")
    table.add_column("Status")
    table.add_column("Changed")
    for result in results:
        style = STATUS_STYLES[result.status]
        table.add_row(
            result.component,
            f"[{style}]{result.status.value}[/{style}]",
            ", ".join(result.changed_fields),
        )
    console.print(table)

    failed = sum(1 for r in results if r.status == RegressionStatus.FAILED)
    console.print(f"Tests completed: {len(results)}, failed: {failed}")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    cli()
