"""Categorization rule commands."""

import click

from walletsync.cli.error_handling import handle_domain_error
from walletsync.domain.categorization import CategorizationEngine
from walletsync.domain.category import CategoryService
from walletsync.domain.entities import RuleType
from walletsync.domain.errors import DomainError, NotFoundError, category_name_not_found
from walletsync.domain.rules import RuleService


def resolve_category_target(
    category_service: CategoryService, category: str, sub_category: str | None
) -> tuple[int, int | None]:
    """Turn category/sub-category names into IDs."""
    category_obj = category_service.get_category_by_name(category)
    if category_obj is None:
        raise NotFoundError(category_name_not_found(category))
    if sub_category is None:
        return category_obj.id, None
    for sub in category_service.list_sub_categories(category_obj.id):
        if sub.name == sub_category:
            return category_obj.id, sub.id
    raise NotFoundError(f"Sub-category '{sub_category}' not found in '{category}'")


@click.group()
def rule_group():
    """Manage categorization rules."""
    pass


@rule_group.command("create")
@click.argument("name")
@click.option(
    "--type",
    "rule_type",
    type=click.Choice([t.value for t in RuleType]),
    required=True,
    help="Match strategy",
)
@click.option("--pattern", required=True, help="MCC code, text, or amount/range like 100-500")
@click.option("--category", required=True, help="Category name")
@click.option("--sub-category", help="Sub-category name within the category")
@click.option("--priority", type=int, default=10, show_default=True, help="Lower runs first")
@click.pass_context
def create_rule(
    ctx,
    name: str,
    rule_type: str,
    pattern: str,
    category: str,
    sub_category: str | None,
    priority: int,
):
    """Create a rule.

    Examples:
        walletsync rule create "Coffee" --type description --pattern "coffee" --category Restaurants
        walletsync rule create "Fuel" --type mcc --pattern 5541 --category Transport
        walletsync rule create "Rent" --type amount --pattern 15000-15500 --category "Bills & Utilities"
    """
    db = ctx.obj["db"]
    try:
        category_id, sub_category_id = resolve_category_target(
            CategoryService(db), category, sub_category
        )
        rule_id = RuleService(db).create_rule(
            name=name,
            rule_type=rule_type,
            match_value=pattern,
            category_id=category_id,
            sub_category_id=sub_category_id,
            priority=priority,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created rule '{name}' (ID: {rule_id})")


@rule_group.command("list")
@click.option("--active", is_flag=True, help="Show only active rules")
@click.pass_context
def list_rules(ctx, active: bool):
    """List rules in the order they are evaluated."""
    db = ctx.obj["db"]
    rules = RuleService(db).list_rules(active_only=active)
    if not rules:
        click.echo("No rules found. Run 'walletsync category init' for the default set.")
        return

    category_names = {c.id: c.name for c in CategoryService(db).list_categories()}
    click.echo(f"\n{'ID':<5} {'Prio':>4}  {'Type':<18} {'Pattern':<16} {'Category':<20} Name")
    click.echo("-" * 90)
    for rule in rules:
        flag = "" if rule.is_active else " [off]"
        click.echo(
            f"{rule.id:<5} {rule.priority:>4}  {rule.rule_type.value:<18} {rule.match_value:<16} "
            f"{category_names.get(rule.category_id, '?'):<20} {rule.name}{flag}"
        )


@rule_group.command("show")
@click.argument("rule_id", type=int)
@click.option("--limit", type=int, default=10, show_default=True, help="Matches to preview")
@click.pass_context
def show_rule(ctx, rule_id: int, limit: int):
    """Show rule usage and a preview of matching transactions."""
    db = ctx.obj["db"]
    rule = RuleService(db).get_rule(rule_id)
    if rule is None:
        click.echo(f"Error: Rule {rule_id} not found", err=True)
        ctx.exit(1)

    engine = CategorizationEngine(db)
    total, recent = engine.get_rule_statistics(rule_id)
    click.echo(f"{rule.name} ({rule.rule_type.value}: {rule.match_value})")
    click.echo(f"Categorized: {total} total, {recent} in the last 30 days")

    matches = engine.get_matching_transactions(rule, limit=limit)
    if matches:
        click.echo("\nMatching transactions:")
        for txn in matches:
            click.echo(f"  {txn.occurred_at:%Y-%m-%d}  {txn.amount:>12,.2f}  {txn.description}")


@rule_group.command("toggle")
@click.argument("rule_id", type=int)
@click.pass_context
def toggle_rule(ctx, rule_id: int):
    """Enable a disabled rule or disable an enabled one."""
    try:
        active = RuleService(ctx.obj["db"]).toggle_rule(rule_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Rule {rule_id} is now {'active' if active else 'inactive'}")


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.confirmation_option(prompt="Transactions categorized by this rule become uncategorized. Continue?")
@click.pass_context
def delete_rule(ctx, rule_id: int):
    """Delete a rule."""
    try:
        RuleService(ctx.obj["db"]).delete_rule(rule_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted rule {rule_id}")


@rule_group.command("apply")
@click.pass_context
def apply_rules(ctx):
    """Run rules over uncategorized transactions."""
    count = CategorizationEngine(ctx.obj["db"]).apply_rules_to_uncategorized()
    click.echo(f"Categorized {count} transactions")


@rule_group.command("reapply")
@click.pass_context
def reapply_rules(ctx):
    """Redo every rule-made categorization (manual ones are kept)."""
    count = CategorizationEngine(ctx.obj["db"]).reapply_all_rules()
    click.echo(f"Categorized {count} transactions")


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
