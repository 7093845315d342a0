import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fermigraph._eval_engine import run_graph_simulation, validate_graph
from fermigraph._io import GraphLoadError, export_results_to_toml, load_estimate, load_graph
from fermigraph._legacy import run_simulation
from fermigraph._models import Graph
from fermigraph._stats import SimulationResult, create_histogram, format_number

from .config import ConfigError, FermiConfig, get_config

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

HISTOGRAM_WIDTH = 40


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Monte Carlo simulation of Fermi estimate graphs."""
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


def _load_config() -> FermiConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _load_graph(path: Path) -> Graph:
    err_console.print(f"[cyan]Loading graph from:[/cyan] {path}")
    try:
        graph = load_graph(path)
    except GraphLoadError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    err_console.print(f"[cyan]Graph:[/cyan] [bold]{escape(graph.name)}[/bold]")
    if graph.question:
        err_console.print(f"[cyan]Question:[/cyan] {escape(graph.question)}")
    return graph


def _summary_table(result: SimulationResult) -> Table:
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Statistic", style="dim")
    table.add_column("Value", justify="right")

    table.add_row("Samples", str(len(result.samples)))
    table.add_row("Mean", format_number(result.mean))
    table.add_row("Std dev", format_number(result.std_dev))
    for name, value in result.percentiles.as_dict().items():
        table.add_row(name, format_number(value))
    return table


def _histogram_table(result: SimulationResult, bins: int) -> Table:
    histogram = create_histogram(result.samples, bins)
    peak = max((b.count for b in histogram), default=0)

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("From", justify="right", style="dim")
    table.add_column("Count", justify="right")
    table.add_column("")
    for histogram_bin in histogram:
        bar = "█" * round(HISTOGRAM_WIDTH * histogram_bin.count / peak) if peak else ""
        table.add_row(histogram_bin.label, str(histogram_bin.count), f"[green]{bar}[/green]")
    return table


def _report_empty(result: SimulationResult) -> None:
    if result.is_empty:
        err_console.print("[red]✗ Simulation produced no valid results. Check the inputs of the result.[/red]")
        raise typer.Exit(code=1)


@app.command()
def simulate(  # noqa: PLR0913
    path: Annotated[
        Path,
        typer.Argument(help="Path to a graph JSON or TOML file"),
    ],
    *,
    iterations: Annotated[
        int | None,
        typer.Option("-n", "--iterations", min=1, help="Number of Monte Carlo iterations"),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option("--seed", help="Random seed for a reproducible run"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file"),
    ] = None,
    show_nodes: Annotated[
        bool,
        typer.Option("--nodes", help="Show the distribution of every intermediate node"),
    ] = False,
    histogram: Annotated[
        bool,
        typer.Option("--histogram", help="Show a histogram of the result"),
    ] = False,
    bins: Annotated[
        int | None,
        typer.Option("--bins", min=1, help="Number of histogram bins"),
    ] = None,
    samples: Annotated[
        bool,
        typer.Option("--samples", help="Include raw samples in the output file"),
    ] = False,
) -> None:
    """Simulate a graph and report the distribution of its result."""
    config = _load_config()
    iterations = iterations if iterations is not None else config.iterations
    seed = seed if seed is not None else config.seed
    output = output if output is not None else config.output

    err_console.print()
    graph = _load_graph(path)
    err_console.print()

    err_console.print(f"[cyan]Running {iterations} iterations...[/cyan]")
    result = run_graph_simulation(graph, iterations, seed=seed)

    for warning in result.warnings:
        err_console.print(f"  [yellow]•[/yellow] {escape(warning)}")
    if result.errors:
        for error in result.errors:
            err_console.print(f"[red]✗ {escape(error)}[/red]")
        raise typer.Exit(code=1)
    err_console.print()

    out_console.print(Panel(_summary_table(result.final_result), title="[bold]Result[/bold]", border_style="cyan"))

    if show_nodes:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Node", style="bold")
        table.add_column("Kind", style="dim")
        table.add_column("Mean", justify="right")
        table.add_column("p5", justify="right")
        table.add_column("p50", justify="right")
        table.add_column("p95", justify="right")
        for node in graph.nodes:
            node_result = result.node_results.get(node.id)
            if node_result is None:
                continue
            table.add_row(
                escape(node.display_name),
                node.kind,
                format_number(node_result.mean),
                format_number(node_result.percentiles.p5),
                format_number(node_result.percentiles.p50),
                format_number(node_result.percentiles.p95),
            )
        out_console.print(Panel(table, title="[bold]Nodes[/bold]", border_style="cyan"))

    if histogram and not result.final_result.is_empty:
        n_bins = bins if bins is not None else config.bins
        out_console.print(
            Panel(_histogram_table(result.final_result, n_bins), title="[bold]Histogram[/bold]", border_style="cyan"),
        )

    if output is not None:
        err_console.print(f"[cyan]Exporting results to:[/cyan] {output}")
        export_results_to_toml(result, output, graph, include_samples=samples)

    _report_empty(result.final_result)
    err_console.print("[green]✓ Simulation complete[/green]")
    err_console.print()


@app.command()
def estimate(
    path: Annotated[
        Path,
        typer.Argument(help="Path to a flat estimate (assumptions and formula) JSON or TOML file"),
    ],
    *,
    iterations: Annotated[
        int | None,
        typer.Option("-n", "--iterations", min=1, help="Number of Monte Carlo iterations"),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option("--seed", help="Random seed for a reproducible run"),
    ] = None,
) -> None:
    """Simulate a flat estimate whose assumptions are combined by a formula."""
    config = _load_config()
    iterations = iterations if iterations is not None else config.iterations
    seed = seed if seed is not None else config.seed

    err_console.print()
    err_console.print(f"[cyan]Loading estimate from:[/cyan] {path}")
    try:
        flat_estimate = load_estimate(path)
    except GraphLoadError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if not flat_estimate.assumptions:
        err_console.print("[red]✗ Add at least one assumption[/red]")
        raise typer.Exit(code=1)
    if not flat_estimate.formula.strip():
        err_console.print("[red]✗ Enter a formula[/red]")
        raise typer.Exit(code=1)

    err_console.print(f"[cyan]Formula:[/cyan] {escape(flat_estimate.formula)}")
    err_console.print(f"[cyan]Running {iterations} iterations...[/cyan]")
    err_console.print()

    result = run_simulation(flat_estimate.assumptions, flat_estimate.formula, iterations, seed=seed)

    out_console.print(Panel(_summary_table(result), title="[bold]Result[/bold]", border_style="cyan"))
    _report_empty(result)
    err_console.print("[green]✓ Simulation complete[/green]")
    err_console.print()


@app.command()
def check(
    path: Annotated[
        Path,
        typer.Argument(help="Path to a graph JSON or TOML file"),
    ],
) -> None:
    """Check that a graph can be simulated without running it."""
    err_console.print()
    graph = _load_graph(path)
    err_console.print()

    err_console.print("[cyan]Validating graph...[/cyan]")
    validation = validate_graph(graph)
    for warning in validation.warnings:
        err_console.print(f"  [yellow]•[/yellow] {escape(warning)}")
    for error in validation.errors:
        err_console.print(f"  [red]•[/red] {escape(error)}")
    err_console.print()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="bold")
    table.add_column("Nodes", justify="right", style="yellow")
    table.add_column("", style="dim")
    for kind, count in graph.kind_counts().items():
        table.add_row(kind, str(count), kind.__doc__)

    err_console.print(
        Panel(
            table,
            title=f"[bold]Graph: {escape(graph.name)}[/bold]",
            subtitle=f"[dim]{len(graph.nodes)} nodes, {len(graph.edges)} edges[/dim]",
            border_style="cyan",
        ),
    )
    err_console.print()

    if not validation.ok:
        err_console.print("[red]✗ Graph is invalid[/red]")
        raise typer.Exit(code=1)

    err_console.print("[green]✓ Graph is valid[/green]")
    err_console.print()


def main() -> None:
    app()
