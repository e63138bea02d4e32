# Overview: Flask CLI command groups for schema maintenance and discount operations.

# backend/promo_engine/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to promo_engine (PowerShell: $env:FLASK_APP="promo_engine").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Discounts (amounts are cents, percentages are basis points):
# - python -m flask discounts evaluate 42 [--at 2026-10-16T23:30Z]
#   Show which automatic discounts would be applied to order 42. Writes nothing.
# - python -m flask discounts apply-auto 42 --applied-by 3
#   Apply every automatic discount that does not need approval.
# - python -m flask discounts summary 42 [--venue-id 1]
#   List the discounts on order 42 with the resulting totals.
# - python -m flask discounts manual 42 --type PERCENTAGE --value 1000 --name "Staff 10%" --applied-by 3
#   Apply an ad-hoc discount. COMP needs --authorized-by (and takes --comp-reason).
# - python -m flask discounts remove 42 7
#   Remove order discount 7 from order 42 and reverse its effect.

import click
from flask.cli import with_appcontext

from .extensions import db
from .money import format_cents
from .services.discount_context import VALID_DISCOUNT_TYPES
from .services.discount_errors import DiscountError
from .services.discount_service import (
    apply_automatic_discounts,
    evaluate_automatic_discounts,
    get_order_discounts_summary,
    remove_discount_from_order,
)
from .services.manual_discount_service import apply_manual_discount
from .time_utils import parse_iso_datetime


def _echo_result(result):
    if result.success:
        click.echo(f"PASS {format_cents(result.amount_cents)} | order total {format_cents(result.new_order_total_cents)}")
    else:
        click.echo(f"FAIL {result.error_code}: {result.error}")


@click.group('system')
def system_group():
    """System maintenance commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('discounts')
def discounts_group():
    """Discount evaluation and application."""


@discounts_group.command('evaluate')
@click.argument('order_id', type=int)
@click.option('--at', 'at', help='Evaluate as of this ISO-8601 time (default: now, naive = UTC)')
@with_appcontext
def evaluate(order_id, at):
    """Show the automatic discounts an order would get (read-only)."""
    try:
        now = parse_iso_datetime(at)
    except ValueError:
        raise click.BadParameter(f"Not an ISO-8601 datetime: {at}", param_hint="--at")

    try:
        selected = evaluate_automatic_discounts(order_id, now=now)
    except DiscountError as exc:
        raise click.ClickException(str(exc))

    if not selected:
        click.echo("No automatic discounts apply.")
        return

    click.echo(f"{'ID':<6} {'Name':<30} {'Type':<14} {'Amount':>10} {'Tax':>8} {'Approval'}")
    click.echo("-" * 80)
    for calc in selected:
        click.echo(
            f"{calc.discount_id or '-':<6} {calc.name[:30]:<30} {calc.discount_type:<14} "
            f"{format_cents(calc.amount_cents):>10} {format_cents(calc.tax_reduction_cents):>8} "
            f"{'YES' if calc.requires_approval else ''}"
        )


@discounts_group.command('apply-auto')
@click.argument('order_id', type=int)
@click.option('--applied-by', type=int, help='User ID applying the discounts')
@with_appcontext
def apply_auto(order_id, applied_by):
    """Apply every automatic discount that does not need approval."""
    result = apply_automatic_discounts(order_id, applied_by=applied_by)
    if not result.success:
        raise click.ClickException(f"{result.error_code}: {result.error}")

    for applied in result.applied:
        _echo_result(applied)
    for name in result.skipped_approval:
        click.echo(f"SKIP {name} (requires approval)")
    click.echo(
        f"Applied {len(result.applied)} discount(s), {format_cents(result.total_discount_cents)} off, "
        f"order total {format_cents(result.new_order_total_cents)}"
    )


@discounts_group.command('summary')
@click.argument('order_id', type=int)
@click.option('--venue-id', type=int, default=None, help='Only show the order if it belongs to this venue')
@with_appcontext
def summary(order_id, venue_id):
    """List the discounts on an order."""
    try:
        data = get_order_discounts_summary(order_id, venue_id=venue_id)
    except DiscountError as exc:
        raise click.ClickException(str(exc))

    for entry in data["discounts"]:
        flags = []
        if entry["is_automatic"]:
            flags.append("auto")
        if entry["is_manual"]:
            flags.append("manual")
        if entry["is_comp"]:
            flags.append("comp")
        click.echo(
            f"#{entry['id']:<5} {entry['name'][:30]:<30} {format_cents(entry['amount_cents']):>10} "
            f"[{', '.join(flags)}] by {entry['applied_by'] or '-'}"
            + (f", authorized by {entry['authorized_by']}" if entry['authorized_by'] else "")
        )
    click.echo(
        f"Subtotal {format_cents(data['subtotal_cents'])} | Discount {format_cents(data['discount_cents'])} | "
        f"Tax {format_cents(data['tax_cents'])} | Total {format_cents(data['total_cents'])}"
    )


@discounts_group.command('manual')
@click.argument('order_id', type=int)
@click.option('--type', 'discount_type', type=click.Choice(VALID_DISCOUNT_TYPES), required=True, help='Discount type')
@click.option('--value', type=int, default=0, help='Basis points for PERCENTAGE, cents for FIXED_AMOUNT')
@click.option('--name', required=True, help='Label shown on the receipt')
@click.option('--applied-by', type=int, required=True, help='User ID entering the discount')
@click.option('--authorized-by', type=int, help='Manager user ID (required for COMP)')
@click.option('--comp-reason', help='Reason recorded with a comp')
@with_appcontext
def manual(order_id, discount_type, value, name, applied_by, authorized_by, comp_reason):
    """Apply an ad-hoc discount or comp."""
    result = apply_manual_discount(
        order_id,
        discount_type,
        value,
        name,
        applied_by,
        authorized_by=authorized_by,
        comp_reason=comp_reason,
    )
    _echo_result(result)


@discounts_group.command('remove')
@click.argument('order_id', type=int)
@click.argument('order_discount_id', type=int)
@with_appcontext
def remove(order_id, order_discount_id):
    """Remove an applied discount from an order."""
    _echo_result(remove_discount_from_order(order_id, order_discount_id))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(discounts_group)
