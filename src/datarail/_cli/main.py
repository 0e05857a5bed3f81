import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from datarail._errors import CellMissingError, CyclicDependencyError
from datarail._eval_engine import EvaluationReport
from datarail._io import export_bag_to_toml, load_bag_from_toml
from datarail._operation import Operation

from .config import ConfigError, DataRailConfig, get_config, parse_operation_source
from .discover import load_operation_from_source

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

_CONFIG_SECTION = escape("[tool.datarail]")


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """DataRail CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _get_config() -> DataRailConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _load_operation(target: str | None, var_name: str | None) -> Operation:
    """Load the operation named on the command line, or the configured one."""
    try:
        if target is None:
            source = _get_config().operation
        elif ":" in target:
            source = parse_operation_source(target, Path.cwd())
        else:
            source = parse_operation_source({"script": target, "name": var_name}, Path.cwd())
    except ConfigError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if source is None:
        err_console.print(f"[red]No operation given and no {_CONFIG_SECTION}.operation configured[/red]")
        raise typer.Exit(code=1)

    err_console.print(f"[cyan]Loading operation from:[/cyan] {escape(str(source))}")
    try:
        operation = load_operation_from_source(source)
    except CyclicDependencyError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    err_console.print(f"[cyan]Operation:[/cyan] [bold]{escape(operation.definition.name)}[/bold]")
    err_console.print()
    return operation


def _status(report: EvaluationReport, name: str) -> str:
    if name in report.failed:
        return "[red]✗ FAILED[/red]"
    if name in report.suppressed:
        return "[yellow]– SUPPRESSED[/yellow]"
    if name in report.evaluated:
        return "[green]✓ EVALUATED[/green]"
    return "[dim]= CACHED[/dim]"


def _report_table(operation: Operation, report: EvaluationReport) -> Table:
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Cell", style="bold")
    table.add_column("Status")
    table.add_column("Value", overflow="fold")

    for name in operation.order:
        value = escape(repr(report.bag[name])) if name in report.bag else "[dim]<absent>[/dim]"
        table.add_row(escape(name), _status(report, name), value)
    return table


@app.command()
def run(
    target: Annotated[
        str | None,
        typer.Argument(help="Path to Python script or module path (e.g., billing.operations:bill)"),
    ] = None,
    *,
    input: Annotated[  # noqa: A002
        Path | None,
        typer.Option("-i", "--input", help="Path to input TOML file"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file"),
    ] = None,
    var_name: Annotated[
        str | None,
        typer.Option("--var", help="Name of the operation variable (for script paths only)"),
    ] = None,
    check_failures: Annotated[
        bool,
        typer.Option("--check-failures", help="Exit non-zero if any cell failed or was suppressed"),
    ] = False,
) -> None:
    """Evaluate an operation over a TOML value bag and export the results."""
    err_console.print()

    config = _get_config()
    input_path = input or config.input
    output_path = output or config.output
    if input_path is None or output_path is None:
        err_console.print(f"[red]Both an input and an output file are required (-i/-o or {_CONFIG_SECTION})[/red]")
        raise typer.Exit(code=1)

    operation = _load_operation(target, var_name)

    err_console.print(f"[cyan]Loading input from:[/cyan] {input_path}")
    bag = load_bag_from_toml(input_path)

    err_console.print("[cyan]Evaluating operation...[/cyan]")
    try:
        report = operation.run(bag)
    except CellMissingError as e:
        err_console.print()
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    err_console.print()

    err_console.print(
        Panel(
            _report_table(operation, report),
            title="[bold]Evaluation Results[/bold]",
            subtitle=(
                f"[dim]{len(report.evaluated)} evaluated, {len(report.skipped)} cached, "
                f"{len(report.suppressed)} suppressed[/dim]"
            ),
            border_style="cyan",
        ),
    )
    err_console.print()

    err_console.print(f"[cyan]Exporting results to:[/cyan] {output_path}")
    export_bag_to_toml(bag, output_path, is_failure=operation.is_failure)

    err_console.print()
    if report.success:
        err_console.print("[green]✓ Evaluation complete[/green]")
    else:
        err_console.print("[yellow]⚠ Evaluation complete with failures[/yellow]")
    err_console.print()

    if check_failures and not report.success:
        raise typer.Exit(code=1)


@app.command()
def check(
    target: Annotated[
        str | None,
        typer.Argument(help="Path to Python script or module path (e.g., billing.operations:bill)"),
    ] = None,
    *,
    var_name: Annotated[
        str | None,
        typer.Option("--var", help="Name of the operation variable (for script paths only)"),
    ] = None,
) -> None:
    """Resolve an operation and show its evaluation order without running it."""
    err_console.print()
    operation = _load_operation(target, var_name)

    graph = operation.dependency_graph()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Cell", style="bold")
    table.add_column("Sources")
    table.add_column("Used by")
    table.add_column("Implementation")

    for position, cell in enumerate(operation.plan, start=1):
        # Raw bag inputs are dimmed
        upstream = graph.predecessors(cell.name)
        sources = ", ".join(
            escape(source) if source in upstream else f"[dim]{escape(source)}[/dim]" for source in cell.sources
        )
        used_by = ", ".join(name for name in operation.order if name in graph.successors(cell.name))
        if cell.name in operation.overrides:
            impl = "[yellow]override[/yellow]"
        elif cell.has_impl:
            impl = "[green]default[/green]"
        else:
            impl = "[red]none (bag value required)[/red]"
        table.add_row(str(position), escape(cell.name), sources, used_by, impl)

    out_console.print(
        Panel(
            table,
            title=f"[bold]Operation: {escape(operation.definition.name)}[/bold]",
            subtitle=f"[dim]{len(graph)} cells[/dim]",
            border_style="cyan",
        ),
    )

    err_console.print()
    err_console.print("[green]✓ Operation is valid[/green]")
    err_console.print()


def main() -> None:
    app()
