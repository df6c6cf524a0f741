"""Bank sync command."""

import asyncio

import click

from walletsync.config import API_URL_ENV, TOKEN_ENV
from walletsync.credentials import EnvSecretProvider, SecretProvider, StaticSecretProvider
from walletsync.domain.account_sync import AccountSyncExecutor
from walletsync.domain.sync_coordinator import (
    Completed,
    Failed,
    SyncCoordinator,
    SyncSnapshot,
    Syncing,
    WaitingForRateLimit,
)
from walletsync.domain.sync_state import SyncStateStore
from walletsync.remote.monobank import MonobankClient
from walletsync.utils.clock import utcnow


def token_source(token: str | None) -> SecretProvider:
    """Use an explicit --token, else read the token environment variable on demand."""
    if token is not None:
        return StaticSecretProvider(token)
    return EnvSecretProvider()


def build_executor(
    ctx, secrets: SecretProvider, api_url: str | None = None
) -> AccountSyncExecutor:
    """Build the executor from CLI context.

    ``ctx.obj`` may carry a ready ``bank_client`` and a ``clock``; otherwise
    a Monobank client is created that reads its token from ``secrets``.
    """
    db = ctx.obj["db"]
    client = ctx.obj.get("bank_client")
    if client is None:
        client = MonobankClient(secrets, base_url=api_url)
    return AccountSyncExecutor(db, client, clock=ctx.obj.get("clock", utcnow))


def _print_progress(snapshot: SyncSnapshot, last: list) -> None:
    status = snapshot.status
    previous = last[0] if last else None
    last[:] = [status]
    if isinstance(status, WaitingForRateLimit):
        if not isinstance(previous, WaitingForRateLimit):
            click.echo(f"Waiting {status.seconds_remaining}s for the bank rate limit...")
    elif isinstance(status, Syncing) and status != previous:
        click.echo(status.progress)


async def _run(coordinator: SyncCoordinator, refresh_accounts: bool):
    if refresh_accounts:
        coordinator.enqueue_full_sync_with_account_refresh()
    else:
        coordinator.enqueue_full_sync()
    await coordinator.wait_until_idle()
    return coordinator.status


@click.command("sync")
@click.option(
    "--refresh-accounts",
    is_flag=True,
    help="Fetch account info first to pick up new accounts and balances",
)
@click.option(
    "--throttle",
    type=float,
    default=None,
    help="Skip if the last successful sync is more recent than this many seconds",
)
@click.option("--token", help=f"Monobank API token (defaults to ${TOKEN_ENV})")
@click.option("--api-url", envvar=API_URL_ENV, help="Override the Monobank API base URL")
@click.pass_context
def sync_command(
    ctx, refresh_accounts: bool, throttle: float | None, token: str | None, api_url: str | None
):
    """Sync accounts and the last 30 days of transactions from Monobank.

    Calls are spaced 60 seconds apart, so syncing N accounts takes roughly
    N minutes.

    Examples:
        walletsync sync
        walletsync sync --refresh-accounts
        walletsync sync --throttle 3600
    """
    db = ctx.obj["db"]
    clock = ctx.obj.get("clock", utcnow)
    coordinator_kwargs = {"clock": clock}
    if "sleep" in ctx.obj:
        coordinator_kwargs["sleep"] = ctx.obj["sleep"]

    secrets = token_source(token)
    coordinator = SyncCoordinator(
        build_executor(ctx, secrets, api_url),
        secrets,
        SyncStateStore(db),
        **coordinator_kwargs,
    )

    if throttle is not None and not coordinator.should_sync(throttle_interval=throttle):
        click.echo("Synced recently, skipping (use a smaller --throttle to force)")
        return

    last_status: list = []
    coordinator.subscribe(lambda snapshot: _print_progress(snapshot, last_status))

    status = asyncio.run(_run(coordinator, refresh_accounts))

    if isinstance(status, Failed):
        click.echo(f"Error: Sync failed: {status.reason}", err=True)
        ctx.exit(1)
    elif isinstance(status, Completed):
        click.echo(
            f"Sync completed: {status.accounts_count} accounts, "
            f"{status.transactions_count} new transactions"
        )
    else:
        click.echo("Sync finished, nothing was synced")


def register_commands(cli):
    """Register sync command with main CLI."""
    cli.add_command(sync_command, name="sync")
