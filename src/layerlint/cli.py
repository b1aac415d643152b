"""Layerlint CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from layerlint import __version__
from layerlint.errors import AnalysisTimeout, ConfigError, InputError, InternalError
from layerlint.report.reporter import EXIT_FAILURE

logger = logging.getLogger(__name__)

_CONFIG_OPTION = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=Path("layerlint.yml"),
    show_default=True,
    help="Layer taxonomy and boundary configuration.",
)


@click.group()
@click.version_option(version=__version__, prog_name="layerlint")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Layerlint - layered-architecture conformance analyzer."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _fail(kind: str, exc: Exception) -> NoReturn:
    click.echo(f"{kind}: {exc}", err=True)
    sys.exit(EXIT_FAILURE)


@main.command()
@click.argument(
    "symbols", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@_CONFIG_OPTION
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--threshold",
    type=click.Choice(["info", "warning", "error"]),
    default="info",
    show_default=True,
    help="Hide findings below this severity. Errors are always shown.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Abort the pass after this many seconds.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Worker threads per stage (default: executor default).",
)
def lint(
    *,
    symbols: Path,
    config_path: Path,
    fmt: str | None,
    threshold: str,
    timeout: float | None,
    workers: int | None,
) -> None:
    """Check symbol records against the layering rules.

    Exit codes: 0 = no error-severity findings, 1 = error-severity findings,
    2 = configuration, input or internal error, or timeout.
    """
    from layerlint.analyzer import lint as run_lint
    from layerlint.findings import Severity
    from layerlint.report.formatters import FORMATTERS, clean_summary

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        report = run_lint(
            symbols,
            config_path,
            threshold=Severity.parse(threshold),
            timeout=timeout,
            max_workers=workers,
        )
    except ConfigError as exc:
        _fail("Config error", exc)
    except InputError as exc:
        _fail("Input error", exc)
    except InternalError as exc:
        _fail("Internal error", exc)
    except AnalysisTimeout as exc:
        _fail("Timeout", exc)
    except Exception as exc:
        logger.debug("Unexpected failure during lint", exc_info=True)
        _fail("Internal error", exc)

    output = FORMATTERS[fmt](report)
    if output:
        click.echo(output)
    elif fmt == "porcelain":
        # Keep stdout parseable; the clean-pass summary goes to stderr.
        click.echo(clean_summary(report), err=True)

    sys.exit(report.exit_status)


@main.command()
@click.argument(
    "symbols", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@_CONFIG_OPTION
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
def classify(*, symbols: Path, config_path: Path, output_json: bool) -> None:
    """Show the layer assigned to each component and what decided it."""
    from layerlint.catalog.builder import build_catalog
    from layerlint.catalog.symbols import load_symbols
    from layerlint.config import load_config

    try:
        config = load_config(config_path)
        catalog = build_catalog(
            load_symbols(symbols),
            stereotypes=config.stereotypes,
            heuristics=config.heuristics,
        )
    except ConfigError as exc:
        _fail("Config error", exc)
    except InputError as exc:
        _fail("Input error", exc)
    except InternalError as exc:
        _fail("Internal error", exc)

    rows = [
        {
            "component": c.id,
            "layer": c.layer.value,
            "source": c.classification.source,
            "detail": c.classification.detail,
            "location": str(c.location) or None,
        }
        for c in sorted(catalog.components.values(), key=lambda c: c.id)
    ]

    if output_json:
        click.echo(json.dumps(rows, ensure_ascii=False, indent=2))
        return

    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title=f"Components ({len(rows)})")
    table.add_column("component", style="cyan")
    table.add_column("layer")
    table.add_column("classified by")
    table.add_column("location", style="dim")
    for row in rows:
        layer = row["layer"]
        layer_cell = f"[yellow]{layer}[/]" if layer == "unclassified" else str(layer)
        how = str(row["source"])
        if row["detail"]:
            how += f" ({row['detail']})"
        table.add_row(str(row["component"]), layer_cell, how, str(row["location"] or ""))
    console.print(table)


@main.command("check-config")
@click.argument(
    "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
def check_config(*, config_path: Path) -> None:
    """Validate a configuration file without analyzing anything."""
    from layerlint.config import load_config

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        _fail("Config error", exc)

    ordering = " > ".join(layer.value for layer in config.registry.layer_ordering)
    click.echo(f"✓ {config_path}: valid")
    click.echo(f"  Layers: {ordering}")
    click.echo(
        f"  Stereotypes: {len(config.stereotypes)}, heuristics: {len(config.heuristics)}"
    )
