# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/rainbow_room/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to rainbow_room (PowerShell: $env:FLASK_APP="rainbow_room").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default locations.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger inspection:
# - python -m flask ledger reconcile [--size-id 12]
#   Compare stock rows with the sum of their log entries; exits 1 on mismatch.
#
# Reports:
# - python -m flask reports low-stock [--location-id 1]
#   Print stock rows at or below their minimum.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import location_service, inventory_service, reporting_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the inventory database.

    Creates:
    - All tables (no-op for tables that already exist)
    - The configured default locations (McKinney, Plano)
    """
    click.echo("START Initializing Rainbow Room inventory...")

    db.create_all()
    click.echo("PASS Tables ready")

    created = location_service.seed_default_locations()
    for location in created:
        click.echo(f"PASS Created location: {location.name} (ID: {location.id})")
    if not created:
        click.echo("PASS Default locations already present")

    click.echo("DONE Initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed locations.")


@click.group('ledger')
def ledger_group():
    """Stock ledger inspection commands."""


@ledger_group.command('reconcile')
@click.option('--size-id', type=int, help='Check a single stock row')
@with_appcontext
def reconcile_ledger(size_id):
    """Report stock rows whose quantity differs from their log sum."""
    report = inventory_service.reconcile(size_id)

    if not report["mismatches"]:
        click.echo(f"PASS {report['checked']} stock row(s) reconcile with the transaction log")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Row':<6} {'Item':<8} {'Loc':<6} {'Size':<12} {'Current':<10} {'Ledger':<10} {'Diff'}")
    click.echo("="*80)
    for m in report["mismatches"]:
        click.echo(
            f"{m['size_id']:<6} {m['item_id']:<8} {m['location_id']:<6} {m['size_label']:<12} "
            f"{m['current_quantity']:<10} {m['ledger_quantity']:<10} {m['difference']}"
        )
    click.echo("="*80 + "\n")
    raise click.ClickException(f"{report['mismatch_count']} stock row(s) do not reconcile")


@click.group('reports')
def reports_group():
    """Read-only reports."""


@reports_group.command('low-stock')
@click.option('--location-id', type=int, help='Restrict to one location')
@with_appcontext
def low_stock_report(location_id):
    """List stock rows at or below their minimum stock level."""
    report = reporting_service.low_stock(location_id=location_id)
    rows = report["rows"]

    if not rows:
        click.echo("No low-stock items.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Item':<30} {'Size':<10} {'Location':<14} {'Qty':<6} {'Min':<6} {'Needed'}")
    click.echo("="*80)
    for r in rows:
        click.echo(
            f"{r['item_name']:<30} {r['size_label']:<10} {r['location_name']:<14} "
            f"{r['current_quantity']:<6} {r['min_stock_level']:<6} {r['needed_quantity']}"
        )
    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(reports_group)
