"""Click CLI entrypoint for Ratekeeper."""

import asyncio
import logging
import sys
from datetime import timedelta
from decimal import Decimal, InvalidOperation

import click

from . import __version__
from .config import ConverterSettings, merge_settings
from .converter import CurrencyConverter
from .errors import RemoteFetchError
from .store import JsonFileStore


def _build_converter(ctx: click.Context) -> CurrencyConverter:
    opts = ctx.obj
    overrides: dict[str, object] = {}
    if opts["endpoint"]:
        overrides["remote_endpoint"] = opts["endpoint"]
    if opts["validity_hours"] is not None:
        overrides["validity_period"] = timedelta(hours=opts["validity_hours"])
    if opts["no_persist"]:
        overrides["persistence_enabled"] = False

    try:
        settings = merge_settings(ConverterSettings.from_env(), overrides)
    except ValueError as e:
        click.echo(f"Error: invalid configuration: {e}")
        sys.exit(1)
    return CurrencyConverter(settings, store=JsonFileStore(opts["state_dir"]))


@click.group()
@click.version_option(version=__version__)
@click.option("--state-dir", default=None, help="State directory (default: ~/.ratekeeper)")
@click.option("--endpoint", default=None, help="Rate API endpoint; the pair key is appended")
@click.option("--validity-hours", type=float, default=None, help="Cached rate validity in hours")
@click.option("--no-persist", is_flag=True, help="Do not read or write the cache file")
@click.option("-v", "--verbose", is_flag=True, help="Log fetches and cache activity")
@click.pass_context
def cli(
    ctx: click.Context,
    state_dir: str | None,
    endpoint: str | None,
    validity_hours: float | None,
    no_persist: bool,
    verbose: bool,
) -> None:
    """Ratekeeper - cached currency rates with stale fallback."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    ctx.obj = {
        "state_dir": state_dir,
        "endpoint": endpoint,
        "validity_hours": validity_hours,
        "no_persist": no_persist,
    }


@cli.command()
@click.argument("from_ccy")
@click.argument("to_ccy")
@click.pass_context
def rate(ctx: click.Context, from_ccy: str, to_ccy: str) -> None:
    """Show the rate from FROM_CCY to TO_CCY."""
    converter = _build_converter(ctx)
    from_ccy, to_ccy = from_ccy.upper(), to_ccy.upper()
    try:
        quote = asyncio.run(converter.get_rate(from_ccy, to_ccy))
    except RemoteFetchError as e:
        click.echo(f"Error: {e}")
        sys.exit(1)

    suffix = " (expired)" if quote.expired else ""
    click.echo(f"1 {from_ccy} = {quote.rate} {to_ccy}{suffix}")


@cli.command()
@click.argument("amount")
@click.argument("from_ccy")
@click.argument("to_ccy")
@click.pass_context
def convert(ctx: click.Context, amount: str, from_ccy: str, to_ccy: str) -> None:
    """Convert AMOUNT from FROM_CCY to TO_CCY."""
    try:
        value = Decimal(amount)
    except InvalidOperation:
        click.echo(f"Error: invalid amount '{amount}'")
        sys.exit(1)

    converter = _build_converter(ctx)
    from_ccy, to_ccy = from_ccy.upper(), to_ccy.upper()
    try:
        result = asyncio.run(converter.convert_amount(value, from_ccy, to_ccy))
    except RemoteFetchError as e:
        click.echo(f"Error: {e}")
        sys.exit(1)

    suffix = " (expired rate)" if result.expired else ""
    click.echo(f"{value} {from_ccy} = {result.value} {to_ccy} @ {result.rate}{suffix}")


@cli.command()
@click.argument("from_ccy")
@click.argument("to_ccy")
@click.pass_context
def quote(ctx: click.Context, from_ccy: str, to_ccy: str) -> None:
    """Fetch a fresh rate from the API, ignoring the cache."""
    converter = _build_converter(ctx)
    from_ccy, to_ccy = from_ccy.upper(), to_ccy.upper()
    try:
        value = asyncio.run(converter.fetch_quote(from_ccy, to_ccy))
    except RemoteFetchError as e:
        click.echo(f"Error: {e}")
        sys.exit(1)

    click.echo(f"1 {from_ccy} = {value} {to_ccy}")


@cli.command()
@click.pass_context
def cached(ctx: click.Context) -> None:
    """List cached rates."""
    converter = _build_converter(ctx)
    records = converter.cached_rates()

    if not records:
        click.echo("No cached rates.")
        return

    now = converter.cache.now()
    click.echo("Cached rates:")
    for key in sorted(records):
        record = records[key]
        state = "fresh" if converter.cache.is_fresh(key) else "expired"
        hours = record.age(now) / 3600
        click.echo(f"  • {key} = {record.value} ({hours:.1f}h old, {state})")


@cli.command()
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Remove all cached rates."""
    converter = _build_converter(ctx)
    count = len(converter.cached_rates())
    converter.clear_cache()
    click.echo(f"Cleared {count} cached rate(s).")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
