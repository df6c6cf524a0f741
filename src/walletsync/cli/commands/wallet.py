"""Wallet commands."""

import click

from walletsync.cli.error_handling import handle_domain_error
from walletsync.domain.currency import CurrencyRateResolver
from walletsync.domain.entities import WalletType
from walletsync.domain.errors import DomainError
from walletsync.domain.wallet import WalletService
from walletsync.utils.amount_parser import parse_amount
from walletsync.utils.clock import utcnow


def _service(ctx) -> WalletService:
    db = ctx.obj["db"]
    resolver = CurrencyRateResolver(db, clock=ctx.obj.get("clock", utcnow))
    return WalletService(db, resolver)


@click.group()
def wallet_group():
    """Manage wallets."""
    pass


@wallet_group.command("create")
@click.argument("name")
@click.option("--currency", default="UAH", show_default=True, help="ISO 4217 currency code")
@click.option("--initial-balance", default="0", help="Opening balance")
@click.option(
    "--type",
    "wallet_type",
    type=click.Choice([WalletType.CASH.value, WalletType.OTHER.value]),
    default=WalletType.CASH.value,
    show_default=True,
)
@click.pass_context
def create_wallet(ctx, name: str, currency: str, initial_balance: str, wallet_type: str):
    """Create a manual wallet (bank wallets are created by sync)."""
    try:
        balance = parse_amount(initial_balance)
        wallet_id = _service(ctx).create_wallet(name, currency, balance, wallet_type)
    except DomainError as e:
        handle_domain_error(ctx, e)
    except ValueError as e:
        click.echo(f"Error: Invalid balance: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Created wallet '{name}' (ID: {wallet_id})")


@wallet_group.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include archived wallets")
@click.pass_context
def list_wallets(ctx, show_all: bool):
    """List wallets with their balances."""
    wallets = _service(ctx).list_wallets(include_archived=show_all)
    if not wallets:
        click.echo("No wallets found. Run 'walletsync sync' to import bank accounts.")
        return

    click.echo(f"\n{'ID':<5} {'Name':<32} {'Balance':>16}  {'Type':<13} Last sync")
    click.echo("-" * 85)
    for wallet in wallets:
        synced = f"{wallet.last_synced_at:%Y-%m-%d %H:%M}" if wallet.last_synced_at else "-"
        archived = " [archived]" if wallet.is_archived else ""
        click.echo(
            f"{wallet.id:<5} {wallet.name:<32} {wallet.current_balance:>12,.2f} {wallet.currency_code}  "
            f"{wallet.wallet_type.value:<13} {synced}{archived}"
        )


@wallet_group.command("archive")
@click.argument("wallet_id", type=int)
@click.pass_context
def archive_wallet(ctx, wallet_id: int):
    """Hide a wallet from listings and net worth."""
    try:
        _service(ctx).archive_wallet(wallet_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Archived wallet {wallet_id}")


@wallet_group.command("unarchive")
@click.argument("wallet_id", type=int)
@click.pass_context
def unarchive_wallet(ctx, wallet_id: int):
    """Restore an archived wallet."""
    try:
        _service(ctx).unarchive_wallet(wallet_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Restored wallet {wallet_id}")


@wallet_group.command("delete")
@click.argument("wallet_id", type=int)
@click.confirmation_option(prompt="This deletes the wallet and all its transactions. Continue?")
@click.pass_context
def delete_wallet(ctx, wallet_id: int):
    """Delete a manual wallet."""
    try:
        _service(ctx).delete_wallet(wallet_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted wallet {wallet_id}")


@wallet_group.command("net-worth")
@click.option("--currency", default="UAH", show_default=True, help="Report currency")
@click.option("--all", "show_all", is_flag=True, help="Include archived wallets")
@click.pass_context
def net_worth(ctx, currency: str, show_all: bool):
    """Sum all wallet balances in one currency."""
    result = _service(ctx).net_worth(currency, include_archived=show_all)
    click.echo(
        f"Net worth: {result.total:,.2f} {result.currency_code} "
        f"({result.wallet_count} wallets)"
    )
    for wallet in result.unconverted:
        click.echo(
            f"  Skipped {wallet.name}: no fresh {wallet.currency_code}/{result.currency_code} rate",
            err=True,
        )


def register_commands(cli):
    """Register wallet commands with main CLI."""
    cli.add_command(wallet_group, name="wallet")
