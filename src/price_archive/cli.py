"""Click-based CLI for price-archive.

Thin wrapper around library modules. Zero business logic: every operation
delegates to ingestion windows, providers, and the fetch pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from price_archive.core.exceptions import ConfigError, InvalidRangeError
from price_archive.core.models import UnitOutcome, UnitStatus, WorkUnit

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from price_archive.core import load_config

        try:
            config = load_config(config_path=ctx.obj.get("config_path"))
        except ConfigError as e:
            raise click.ClickException(str(e)) from e

        data_dir = ctx.obj.get("data_dir")
        if data_dir:
            storage = config.storage.model_copy(update={"data_dir": data_dir})
            config = config.model_copy(update={"storage": storage})
        ctx.obj["config"] = config
    return ctx.obj["config"]


def _resolve_currencies(currency: str) -> list[str]:
    """Expand 'all' or validate a single currency symbol."""
    from price_archive.core.assets import COIN_CONFIGS, supported_coins

    if currency.lower() == "all":
        return supported_coins()
    if currency in COIN_CONFIGS:
        return [currency]
    # Symbols are stored case-sensitively (stETH); accept any casing
    for symbol in COIN_CONFIGS:
        if symbol.lower() == currency.lower():
            return [symbol]
    raise click.UsageError(
        f'Currency "{currency}" is not supported. '
        f"Available currencies: {', '.join(supported_coins())}, all"
    )


def _resolve_period(
    year: str | None,
    month: str | None,
    today: date,
    *,
    max_lookback_days: int | None = None,
    min_year: int | None = None,
) -> tuple[int, list[int]]:
    """Apply current year/month defaults and expand the month argument."""
    from price_archive.ingestion.windows import parse_year, resolve_months

    try:
        year_num = parse_year(year or str(today.year))
        months = resolve_months(
            year_num,
            month or f"{today.month:02d}",
            today=today,
            max_lookback_days=max_lookback_days,
            min_year=min_year,
        )
    except InvalidRangeError as e:
        raise click.UsageError(str(e)) from e
    return year_num, months


async def _run_with_progress(pipeline, units: list[WorkUnit]) -> list[UnitOutcome]:
    """Run the pipeline with a spinner and one status line per unit."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=len(units))

        def on_start(unit: WorkUnit) -> None:
            progress.update(task, description=f"Fetching {unit.asset} prices for {unit.period}")

        def on_outcome(unit: WorkUnit, outcome: UnitOutcome) -> None:
            if outcome.status == UnitStatus.SUCCESS:
                progress.console.print(
                    f"[green]✓[/green] Fetched {unit.asset} prices for {unit.period} "
                    f"({outcome.changed_count} new entries)"
                )
            elif outcome.status == UnitStatus.SKIPPED:
                progress.console.print(f"[blue]i[/blue] No new data for {unit.asset} {unit.period}")
            else:
                progress.console.print(
                    f"[red]✗[/red] Failed to fetch {unit.asset} prices for {unit.period}: "
                    f"{outcome.error}"
                )
            progress.advance(task)

        return await pipeline.run(units, on_start=on_start, on_outcome=on_outcome)


def _display_summary(outcomes: list[UnitOutcome]) -> None:
    """Render the counts line, the per-asset table, and the error table."""
    from price_archive.pipeline import aggregate_outcomes, group_outcomes

    if not outcomes:
        return

    groups = group_outcomes(outcomes)
    console.print()
    console.rule("[bold cyan]Processing Summary[/bold cyan]")
    console.print(
        f"[green]Success:[/green] {len(groups.successful)} | "
        f"[yellow]Skipped:[/yellow] {len(groups.skipped)} | "
        f"[red]Failed:[/red] {len(groups.failed)}"
    )

    if groups.successful or groups.skipped:
        table = Table(border_style="cyan")
        table.add_column("Currency", style="bold")
        table.add_column("Period")
        table.add_column("New Entries", justify="right")
        table.add_column("Status")
        table.add_column("File Path", style="dim")
        for summary in aggregate_outcomes(outcomes):
            status = (
                "[green]Updated[/green]" if summary.has_success else "[yellow]No changes[/yellow]"
            )
            table.add_row(
                summary.asset,
                summary.period_display,
                str(summary.total_changed),
                status,
                summary.path or "",
            )
        console.print(table)

    if groups.failed:
        errors = Table(title="Errors", border_style="red")
        errors.add_column("Currency", style="bold")
        errors.add_column("Period")
        errors.add_column("Error")
        for outcome in groups.failed:
            errors.add_row(outcome.asset, outcome.period, outcome.error or "Unknown error")
        console.print(errors)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="PRICE_ARCHIVE_CONFIG",
    default=None,
    help="Path to price-archive.yml config file.",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Root directory holding the crypto/ and forex/ series folders.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="price-archive")
@click.pass_context
def cli(ctx: click.Context, config: str | None, data_dir: str | None, verbose: bool) -> None:
    """Price Archive: daily crypto and forex series kept in TSV files."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["data_dir"] = data_dir
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# fetch-crypto
# ---------------------------------------------------------------------------


@cli.command("fetch-crypto")
@click.option(
    "--currency",
    required=True,
    help="Currency symbol (e.g. ETH, CHZ) or 'all' for all currencies.",
)
@click.option("--year", type=str, default=None, help="Year in YYYY format (default: current year).")
@click.option(
    "--month",
    type=str,
    default=None,
    help="Month in MM format (01-12) or 'all' (default: current month).",
)
@click.option(
    "--recent-days",
    type=int,
    default=None,
    help="Only fetch the most recent N complete days (for daily cron jobs).",
)
@click.pass_context
def fetch_crypto(
    ctx: click.Context,
    currency: str,
    year: str | None,
    month: str | None,
    recent_days: int | None,
) -> None:
    """Fetch historical crypto prices from CoinGecko (up to 365 days back)."""
    from price_archive.ingestion.coingecko import CoinGeckoProvider
    from price_archive.pipeline import (
        FetchPipeline,
        exit_code,
        plan_month_units,
        plan_recent_units,
        utc_today,
    )
    from price_archive.storage.tsv import TsvSeriesStore

    config = _load_config(ctx)
    cg_config = config.coingecko
    currencies = _resolve_currencies(currency)
    today = utc_today()

    if recent_days is not None:
        if recent_days < 1:
            raise click.BadParameter("must be a positive integer", param_hint="--recent-days")
        units = plan_recent_units(currencies, recent_days)
        console.print(
            f"[cyan]Fetching prices for {_scope_label(currencies)} "
            f"for the last {recent_days} days[/cyan]"
        )
    else:
        year_num, months = _resolve_period(
            year, month, today, max_lookback_days=cg_config.max_lookback_days
        )
        units = plan_month_units(currencies, year_num, months)
        console.print(
            f"[cyan]Fetching prices for {_scope_label(currencies)} "
            f"across {len(months)} month(s) of {year_num}[/cyan]"
        )

    async def _run():
        async with CoinGeckoProvider(cg_config) as provider:
            pipeline = FetchPipeline(
                provider,
                TsvSeriesStore(config.storage.crypto_path),
                policy=config.storage.crypto_policy,
                today=today,
                max_lookback_days=cg_config.max_lookback_days,
                unit_timeout=config.unit_timeout,
            )
            return await _run_with_progress(pipeline, units)

    outcomes = _run_async(_run())
    _display_summary(outcomes)
    ctx.exit(exit_code(outcomes))


def _scope_label(currencies: list[str]) -> str:
    if len(currencies) == 1:
        return currencies[0]
    return f"all {len(currencies)} currencies"


# ---------------------------------------------------------------------------
# fetch-forex
# ---------------------------------------------------------------------------


@cli.command("fetch-forex")
@click.option("--year", type=str, default=None, help="Year in YYYY format (default: current year).")
@click.option(
    "--month",
    type=str,
    default=None,
    help="Month in MM format (01-12) or 'all' (default: current month).",
)
@click.pass_context
def fetch_forex(ctx: click.Context, year: str | None, month: str | None) -> None:
    """Fetch daily GBP/USD forex rates from CurrencyFreaks."""
    from price_archive.core.assets import FOREX_ASSETS
    from price_archive.ingestion.currencyfreaks import CurrencyFreaksProvider
    from price_archive.pipeline import FetchPipeline, exit_code, plan_month_units, utc_today
    from price_archive.storage.tsv import TsvSeriesStore

    config = _load_config(ctx)
    cf_config = config.currencyfreaks
    today = utc_today()

    year_num, months = _resolve_period(year, month, today, min_year=cf_config.min_year)
    units = plan_month_units(list(FOREX_ASSETS), year_num, months)
    console.print(
        f"[cyan]Fetching {'/'.join(FOREX_ASSETS)} vs USD rates "
        f"across {len(months)} month(s) of {year_num}[/cyan]"
    )

    async def _run():
        async with CurrencyFreaksProvider(cf_config) as provider:
            pipeline = FetchPipeline(
                provider,
                TsvSeriesStore(config.storage.forex_path),
                policy=config.storage.forex_policy,
                today=today,
                unit_timeout=config.unit_timeout,
            )
            return await _run_with_progress(pipeline, units)

    outcomes = _run_async(_run())
    _display_summary(outcomes)
    ctx.exit(exit_code(outcomes))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
