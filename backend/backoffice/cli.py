# Overview: Flask CLI commands for database bootstrap and quick inventory/purchase reports.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "backoffice:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Reports (read-only, computed from current records):
# - python -m flask reports inventory --store main
#   Item count, low-stock count, expiring-soon count and total value.
# - python -m flask reports low-stock --store main
#   Items at or below their minimum quantity.
# - python -m flask reports purchases --store main
#   Purchase count, open payments and amounts.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import reporting_service


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("Database initialized.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping all data.')
@with_appcontext
def reset_db(yes):
    """Drop and recreate all tables (DEV/TEST only)."""
    if not yes:
        click.echo("Refusing to reset without --yes.")
        return
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


@click.group('reports')
def reports_group():
    """Derived inventory and purchase reports."""


@reports_group.command('inventory')
@click.option('--store', 'store_id', required=True, help='Store id.')
@with_appcontext
def inventory_report(store_id):
    """Inventory totals for a store."""
    stats = reporting_service.inventory_stats_for_store(store_id)
    click.echo(f"Items:          {stats['total_items']}")
    click.echo(f"Low stock:      {stats['low_stock']}")
    click.echo(f"Expiring soon:  {stats['expiring_soon']}")
    click.echo(f"Total value:    {_money(stats['total_value_cents'])}")


@reports_group.command('low-stock')
@click.option('--store', 'store_id', required=True, help='Store id.')
@with_appcontext
def low_stock_report(store_id):
    """List items at or below their minimum quantity."""
    items = reporting_service.low_stock_for_store(store_id)
    if not items:
        click.echo("No low-stock items.")
        return
    for item in items:
        click.echo(f"{item.name:<30} {item.quantity:>8} {item.unit:<8} (min {item.min_quantity})")


@reports_group.command('purchases')
@click.option('--store', 'store_id', required=True, help='Store id.')
@with_appcontext
def purchase_report(store_id):
    """Purchase totals for a store."""
    stats = reporting_service.purchase_stats_for_store(store_id)
    click.echo(f"Purchases:         {stats['total_purchases']}")
    click.echo(f"Pending payments:  {stats['pending_payments']}")
    click.echo(f"Total amount:      {_money(stats['total_amount_cents'])}")
    click.echo(f"Paid amount:       {_money(stats['paid_amount_cents'])}")
    click.echo(f"Outstanding:       {_money(stats['outstanding_cents'])}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(reports_group)
