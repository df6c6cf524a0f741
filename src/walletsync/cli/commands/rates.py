"""Currency rate commands."""

import asyncio

import click

from walletsync.cli.commands.sync import build_executor, token_source
from walletsync.cli.error_handling import handle_domain_error, handle_remote_error
from walletsync.config import API_URL_ENV
from walletsync.domain.currency import CurrencyRateResolver
from walletsync.domain.errors import DomainError
from walletsync.remote.errors import RemoteAPIError
from walletsync.utils.amount_parser import parse_amount
from walletsync.utils.clock import utcnow


def _resolver(ctx) -> CurrencyRateResolver:
    return CurrencyRateResolver(ctx.obj["db"], clock=ctx.obj.get("clock", utcnow))


@click.group()
def rates_group():
    """Manage currency exchange rates."""
    pass


@rates_group.command("sync")
@click.option("--api-url", envvar=API_URL_ENV, help="Override the Monobank API base URL")
@click.pass_context
def sync_rates(ctx, api_url: str | None):
    """Fetch the public Monobank rate table (no token needed)."""
    executor = build_executor(ctx, token_source(None), api_url=api_url)
    try:
        stored = asyncio.run(executor.sync_currency_rates())
    except RemoteAPIError as e:
        handle_remote_error(ctx, e)
    click.echo(f"Stored {stored} currency rates")


@rates_group.command("list")
@click.pass_context
def list_rates(ctx):
    """List stored rates, marking stale ones."""
    resolver = _resolver(ctx)
    rates = resolver.list_rates()
    if not rates:
        click.echo("No exchange rates stored. Run 'walletsync rates sync' first.")
        return

    click.echo(f"\n{'Pair':<10} {'Rate':>16} {'Buy':>12} {'Sell':>12}  {'Source':<10} Fetched")
    click.echo("-" * 80)
    for rate in rates:
        buy = f"{rate.buy_rate:.4f}" if rate.buy_rate is not None else "-"
        sell = f"{rate.sell_rate:.4f}" if rate.sell_rate is not None else "-"
        stale = "" if resolver.is_fresh(rate) else " (stale)"
        click.echo(
            f"{rate.currency_pair:<10} {rate.rate:>16.6f} {buy:>12} {sell:>12}  "
            f"{rate.source:<10} {rate.fetched_at:%Y-%m-%d %H:%M}{stale}"
        )


@rates_group.command("set")
@click.argument("from_currency")
@click.argument("to_currency")
@click.argument("rate")
@click.option("--source", default="manual", show_default=True, help="Source tag")
@click.pass_context
def set_rate(ctx, from_currency: str, to_currency: str, rate: str, source: str):
    """Store a rate by hand, e.g. 'walletsync rates set USD UAH 41.25'."""
    try:
        value = parse_amount(rate)
        _resolver(ctx).save_rate(from_currency, to_currency, value, source=source)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Stored {from_currency.upper()}/{to_currency.upper()} = {value}")


@rates_group.command("convert")
@click.argument("amount")
@click.argument("from_currency")
@click.argument("to_currency")
@click.pass_context
def convert(ctx, amount: str, from_currency: str, to_currency: str):
    """Convert an amount using fresh stored rates."""
    try:
        value = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    converted = _resolver(ctx).convert(value, from_currency, to_currency)
    if converted is None:
        click.echo(
            f"Error: No fresh rate from {from_currency.upper()} to {to_currency.upper()}",
            err=True,
        )
        ctx.exit(1)
    click.echo(f"{value:,.2f} {from_currency.upper()} = {converted:,.2f} {to_currency.upper()}")


@rates_group.command("cleanup")
@click.pass_context
def cleanup(ctx):
    """Delete rates older than the 7 day retention window."""
    deleted = _resolver(ctx).cleanup_old_rates()
    click.echo(f"Deleted {deleted} old exchange rates")


def register_commands(cli):
    """Register rate commands with main CLI."""
    cli.add_command(rates_group, name="rates")
