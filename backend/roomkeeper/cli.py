# Overview: Flask CLI command groups for bootstrap, layout, session sweeps and maintenance.

# backend/roomkeeper/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables if missing, then seed default products and the 4x4 seat / 20 locker layout.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Layout:
# - python -m flask layout apply --rows 5 --cols 6 --lockers 30 --yes
#   Replace every seat and locker (deletes sessions and audit events).
#
# Sessions:
# - python -m flask sessions list
#   List ACTIVE sessions.
# - python -m flask sessions sweep [--policy MANUAL|AUTO]
#   Run the expiration sweep once (defaults to the expirationHandling setting).
#
# Labels:
# - python -m flask labels print [--format LEGACY|APP1]
#   Print the scan code for every seat and locker.
#
# Maintenance:
# - python -m flask maintenance prune-logs [--retention-days 90]
#   Delete audit events older than the retention window (defaults to logRetentionDays).

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import audit_service, expiration_service, layout_service, resource_store, settings_service
from .services.scan_codes import CODE_FORMATS
from .services.settings_service import EXPIRATION_POLICIES
from .time_utils import to_utc_z
from .validation import LifecycleError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the kiosk backend: schema, default products and default layout.

    Idempotent: existing products and resources are left alone.
    """
    click.echo("START Initializing roomkeeper...")
    db.create_all()
    created = layout_service.seed_defaults()
    click.echo(f"PASS Products created: {created['products']}")
    click.echo(f"PASS Seats created: {created['seats']}")
    click.echo(f"PASS Lockers created: {created['lockers']}")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed.")


@click.group('layout')
def layout_group():
    """Seat and locker layout commands."""


@layout_group.command('apply')
@click.option('--rows', type=int, required=True, help='Seat rows (A-Z, max 26)')
@click.option('--cols', type=int, required=True, help='Seats per row')
@click.option('--lockers', type=int, default=0, show_default=True)
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def apply_layout_cli(rows, cols, lockers, yes):
    """Replace every seat and locker. Deletes all sessions and audit events."""
    if not yes:
        click.confirm("WARN This deletes all sessions and logs. Continue?", abort=True)
    try:
        result = layout_service.apply_layout(rows, cols, lockers)
    except LifecycleError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Layout applied: {result['seat_count']} seats, {result['locker_count']} lockers")


@click.group('sessions')
def sessions_group():
    """Usage session inspection and expiration."""


@sessions_group.command('list')
@with_appcontext
def list_sessions_cli():
    """List ACTIVE sessions."""
    sessions = resource_store.list_active_sessions()
    if not sessions:
        click.echo("No active sessions.")
        return

    click.echo(f"{'ID':<6} {'Kind':<8} {'Resource':<10} {'Tag':<6} {'Start':<22} {'Deadline':<22}")
    click.echo("-" * 78)
    for s in sessions:
        resource_code = s.resource.code if s.resource else "?"
        click.echo(
            f"{s.id:<6} {s.resource_kind:<8} {resource_code:<10} {s.user_tag:<6} "
            f"{to_utc_z(s.start_at) or '':<22} {to_utc_z(s.end_at) or '-':<22}"
        )


@sessions_group.command('sweep')
@click.option('--policy', type=click.Choice(EXPIRATION_POLICIES, case_sensitive=False), default=None,
              help='Override the expirationHandling setting')
@with_appcontext
def sweep_cli(policy):
    """Apply the expiration policy to every overdue session."""
    result = expiration_service.sweep_expired_sessions(policy=policy)
    click.echo(
        f"PASS Sweep ({result.policy}): {len(result.expired)} expired, "
        f"{len(result.ended)} ended, {len(result.failed)} failed"
    )
    if result.failed:
        click.echo(f"WARN Failed session ids: {', '.join(str(i) for i in result.failed)}")


@click.group('labels')
def labels_group():
    """Printable scan codes."""


@labels_group.command('print')
@click.option('--format', 'fmt', type=click.Choice(CODE_FORMATS, case_sensitive=False), default=None,
              help='Wire format (defaults to the qrFormat setting)')
@with_appcontext
def print_labels_cli(fmt):
    for label in layout_service.build_labels(fmt.upper() if fmt else None):
        click.echo(f"{label['kind']:<8} {label['id']:<6} {label['code']}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('prune-logs')
@click.option('--retention-days', type=int, default=None,
              help='Defaults to the logRetentionDays setting')
@with_appcontext
def prune_logs_cli(retention_days):
    """
    Delete audit events older than the retention window.

    A retention of 0 keeps everything.
    """
    if retention_days is None:
        retention_days = settings_service.get_log_retention_days()
    deleted = audit_service.prune_audit_events(retention_days)
    click.echo(f"Deleted {deleted} audit events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(layout_group)
    app.cli.add_command(sessions_group)
    app.cli.add_command(labels_group)
    app.cli.add_command(maintenance_group)
