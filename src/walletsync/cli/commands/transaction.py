"""Transaction commands."""

import click

from walletsync.cli.commands.rule import resolve_category_target
from walletsync.cli.error_handling import handle_domain_error
from walletsync.domain.category import CategoryService
from walletsync.domain.errors import DomainError
from walletsync.domain.transaction import TransactionService
from walletsync.utils.date_parser import day_bounds, parse_date


@click.group()
def transaction_group():
    """View and categorize transactions."""
    pass


@transaction_group.command("list")
@click.option("--wallet", "wallet_id", type=int, help="Wallet ID")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative)")
@click.option("--uncategorized", is_flag=True, help="Show only uncategorized transactions")
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum rows")
@click.pass_context
def list_transactions(
    ctx,
    wallet_id: int | None,
    start_date: str | None,
    end_date: str | None,
    uncategorized: bool,
    limit: int,
):
    """List transactions, newest first."""
    db = ctx.obj["db"]
    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    start_at, end_at = day_bounds(start, end)

    transactions = TransactionService(db).list_transactions(
        wallet_id=wallet_id,
        start_at=start_at,
        end_at=end_at,
        uncategorized_only=uncategorized,
        limit=limit,
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    category_names = {c.id: c.name for c in CategoryService(db).list_categories()}
    click.echo(f"\n{'ID':<6} {'Date':<10} {'Amount':>12}  {'Category':<20} Description")
    click.echo("-" * 90)
    for txn in transactions:
        category = category_names.get(txn.category_id, "-")
        hold = " (hold)" if txn.is_hold else ""
        click.echo(
            f"{txn.id:<6} {txn.occurred_at:%Y-%m-%d} {txn.amount:>12,.2f}  "
            f"{category:<20} {txn.description}{hold}"
        )


@transaction_group.command("categorize")
@click.argument("transaction_id", type=int)
@click.option("--category", help="Category name")
@click.option("--sub-category", help="Sub-category name within the category")
@click.option("--clear", is_flag=True, help="Remove the category and let rules decide again")
@click.pass_context
def categorize(
    ctx, transaction_id: int, category: str | None, sub_category: str | None, clear: bool
):
    """Categorize a transaction by hand. Rules will not override it."""
    db = ctx.obj["db"]
    if clear == (category is not None):
        click.echo("Error: Give either --category or --clear", err=True)
        ctx.exit(1)

    try:
        if clear:
            TransactionService(db).set_category(transaction_id, None)
            click.echo(f"Cleared category of transaction {transaction_id}")
        else:
            category_id, sub_category_id = resolve_category_target(
                CategoryService(db), category, sub_category
            )
            TransactionService(db).set_category(transaction_id, category_id, sub_category_id)
            click.echo(f"Categorized transaction {transaction_id} as {category}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("note")
@click.argument("transaction_id", type=int)
@click.argument("note", required=False)
@click.pass_context
def set_note(ctx, transaction_id: int, note: str | None):
    """Set a note on a transaction; omit NOTE to clear it."""
    try:
        TransactionService(ctx.obj["db"]).update_note(transaction_id, note)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated note of transaction {transaction_id}")


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.confirmation_option(prompt="Delete this transaction?")
@click.pass_context
def delete_transaction(ctx, transaction_id: int):
    """Delete a manually entered transaction."""
    try:
        TransactionService(ctx.obj["db"]).delete_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted transaction {transaction_id}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
