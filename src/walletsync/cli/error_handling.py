"""CLI error handling helpers."""

import click

from walletsync.domain.errors import DomainError
from walletsync.remote.errors import RemoteAPIError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def handle_remote_error(ctx: click.Context, error: RemoteAPIError) -> None:
    """Render a bank API failure and exit with failure."""
    click.echo(f"Error: Bank API request failed: {error}", err=True)
    ctx.exit(1)
