"""Category management commands."""

import click

from walletsync.cli.error_handling import handle_domain_error
from walletsync.domain.category import CategoryService
from walletsync.domain.entities import CategoryType
from walletsync.domain.errors import DomainError


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("init")
@click.pass_context
def init_categories(ctx):
    """Create the default categories and starter rules."""
    created = CategoryService(ctx.obj["db"]).seed_defaults()
    if created == 0:
        click.echo("Default categories already exist")
    else:
        click.echo(f"Created {created} default categories")


@category_group.command("list")
@click.option(
    "--type",
    "category_type",
    type=click.Choice([t.value for t in CategoryType]),
    help="Show only one type",
)
@click.pass_context
def list_categories(ctx, category_type: str | None):
    """List categories with their sub-categories."""
    service = CategoryService(ctx.obj["db"])
    categories = service.list_categories(category_type)
    if not categories:
        click.echo("No categories found. Run 'walletsync category init' to create default categories.")
        return

    click.echo("\nCategories:")
    for cat in categories:
        click.echo(f"{cat.name} (ID: {cat.id}, {cat.category_type.value})")
        for sub in service.list_sub_categories(cat.id):
            click.echo(f"  {sub.name} (ID: {sub.id})")


@category_group.command("create")
@click.argument("name")
@click.option("--parent", help="Create a sub-category under this category")
@click.option(
    "--type",
    "category_type",
    type=click.Choice([t.value for t in CategoryType]),
    default=CategoryType.EXPENSE.value,
    help="Category type (default: expense)",
)
@click.pass_context
def create_category(ctx, name: str, parent: str | None, category_type: str):
    """Create a new category or sub-category."""
    service = CategoryService(ctx.obj["db"])
    try:
        if parent is not None:
            sub_id = service.create_sub_category(name, parent)
            click.echo(f"Created sub-category '{name}' under '{parent}' (ID: {sub_id})")
        else:
            category_id = service.create_category(name, category_type)
            click.echo(f"Created category '{name}' (ID: {category_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
