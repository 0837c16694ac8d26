"""Command-line interface for normalizing brokerage exports."""

from __future__ import annotations

import logging
import sys
from collections import Counter
from pathlib import Path

import click

from tradenorm.config import ConfigError, TradenormConfig
from tradenorm.export import trades_to_csv, trades_to_json
from tradenorm.models import ZERO
from tradenorm.parsers.base import BrokerParser
from tradenorm.parsers.errors import ParserError
from tradenorm.registry import get_parser, supported_brokers

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
OUTPUT_FORMATS = ("json", "csv")


def _setup_logging(log_level: str) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _config(ctx: click.Context) -> TradenormConfig:
    cfg = ctx.obj.get("config") if ctx.obj else None
    return cfg or TradenormConfig()


def _resolve_parser(cfg: TradenormConfig, broker: str | None) -> BrokerParser:
    """Pick the parser from --broker, falling back to the configured default."""
    name = broker or cfg.parse.default_broker
    if not name:
        raise click.UsageError("No broker given. Pass --broker or set parse.default_broker.")
    return get_parser(name, strict_numbers=cfg.parse.strict_numbers)


def _combine(cfg: TradenormConfig, separate: bool = False) -> bool | None:
    """None keeps the parser's own pooling behavior; False forces per-file parsing."""
    if separate or not cfg.parse.combine_files:
        return False
    return None


def _echo_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)


_broker_option = click.option(
    "--broker",
    "-b",
    default=None,
    help="Broker name or alias (e.g. schwab, firstrade).",
)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Set logging verbosity.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to tradenorm.toml config file.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, config_path: str | None) -> None:
    """tradenorm - Normalize brokerage transaction exports.

    \b
    Quick start:
      1. tradenorm brokers                                 List supported brokers
      2. tradenorm parse -b schwab export.json             Print trades as JSON
      3. tradenorm parse -b firstrade a.csv --format csv   Print trades as CSV
      4. tradenorm summary -b schwab export.json           Count trades by type

    \b
    Configuration:
      Set TRADENORM_CONFIG or place tradenorm.toml in the working directory.
    """
    _setup_logging(log_level)
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = TradenormConfig.find_and_load(config_path)
    except ConfigError as exc:
        click.echo(f"Invalid config: {exc}", err=True)
        raise SystemExit(1)


# --- Broker commands ---


@cli.command()
def brokers() -> None:
    """List supported brokers and their export formats."""
    for broker in supported_brokers():
        formats = ", ".join(f.display_name for f in broker.supported_formats)
        click.echo(f"{broker.value:<16} {broker.display_name:<16} {formats}")


# --- Parse commands ---


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@_broker_option
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    default=None,
    help="Output format (default: from config, else json).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write to this file instead of stdout.",
)
@click.option(
    "--separate",
    is_flag=True,
    default=False,
    help="Parse each file on its own instead of pooling records across files.",
)
@click.pass_context
def parse(
    ctx: click.Context,
    files: tuple[str, ...],
    broker: str | None,
    output_format: str | None,
    output: str | None,
    separate: bool,
) -> None:
    """Parse broker export files into normalized trades.

    Warnings for skipped rows go to stderr.

    \b
    Examples:
      tradenorm parse -b schwab 2024.json 2025.json
      tradenorm parse -b firstrade export.csv --format csv -o trades.csv
    """
    cfg = _config(ctx)
    try:
        parser = _resolve_parser(cfg, broker)
        result = parser.parse_files(files, combine=_combine(cfg, separate))
    except ParserError as exc:
        click.echo(f"Failed to parse: {exc}", err=True)
        raise SystemExit(1)

    _echo_warnings(result.warnings)

    fmt = (output_format or cfg.output.format).lower()
    if fmt == "csv":
        rendered = trades_to_csv(result.trades)
    else:
        rendered = trades_to_json(result.trades, indent=cfg.output.indent)

    if output:
        Path(output).write_text(rendered, encoding="utf-8")
        click.echo(f"Wrote {len(result.trades)} trades to {output}.", err=True)
    else:
        click.echo(rendered)


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@_broker_option
@click.pass_context
def summary(ctx: click.Context, files: tuple[str, ...], broker: str | None) -> None:
    """Show trade counts per type and net cash flow.

    \b
    Examples:
      tradenorm summary -b schwab export.json
    """
    cfg = _config(ctx)
    try:
        parser = _resolve_parser(cfg, broker)
        result = parser.parse_files(files, combine=_combine(cfg))
    except ParserError as exc:
        click.echo(f"Failed to parse: {exc}", err=True)
        raise SystemExit(1)

    counts = Counter(t.type for t in result.trades)
    net = sum((t.total_amount for t in result.trades), ZERO)

    click.echo(f"Broker: {parser.name}")
    click.echo(f"  Total trades: {len(result.trades):,}")
    for trade_type, count in sorted(counts.items(), key=lambda item: item[0].display_name):
        click.echo(f"  {trade_type.display_name + ':':<22} {count:,}")
    click.echo(f"  Net cash flow: {net:,.2f}")
    if result.trades:
        first, last = result.trades[0].trade_date, result.trades[-1].trade_date
        click.echo(f"  Date range:   {first.date()} to {last.date()}")
    click.echo(f"  Warnings:     {len(result.warnings)}")
    _echo_warnings(result.warnings)
