# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/techsheet/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin --admin-email admin@techsheet.local]
#   Create all tables and an approved administrator (prompts for the password).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--status pending]
#   List accounts with role and approval state.
# - python -m flask users create --username mario --email mario@example.com --name "Mario Rossi" --role compiler --approved
#   Create an account (prompts for the password).
# - python -m flask users approve mario [--role compiler] [--group 1 --group 2]
#   Approve a pending account.
# - python -m flask users set-role mario viewer
#   Change the role of an approved account.
# - python -m flask users set-password mario
#   Reset a password and revoke the user's sessions.
#
# Suggestions:
# - python -m flask suggestions rebuild
#   Recreate the autocomplete index from the products table.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired/revoked session tokens older than the retention window.
# - python -m flask maintenance cleanup-security-events --retention-days 180
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import Role
from .services import (
    account_service,
    auth_service,
    maintenance_service,
    session_service,
    suggestion_service,
)
from .services.auth_service import DuplicateUsernameError, PasswordValidationError
from .validation import ValidationError, InvalidTransitionError


def _require_username(username: str) -> User:
    user = auth_service.get_user_by_username(username)
    if not user:
        raise click.ClickException(f"User '{username}' not found")
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', show_default=True)
@click.option('--admin-email', default='admin@techsheet.local', show_default=True)
@click.option('--admin-name', default='Administrator', show_default=True)
@click.password_option('--admin-password', help='Password for the bootstrap administrator')
@with_appcontext
def init_system(admin_username, admin_email, admin_name, admin_password):
    """
    Create the schema and a bootstrap administrator.

    Idempotent: an existing administrator username is left untouched.
    """
    click.echo("START Initializing TechSheet...")

    db.create_all()
    click.echo("PASS Database schema ready")

    if auth_service.get_user_by_username(admin_username):
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
        return

    try:
        user = auth_service.create_user(
            username=admin_username,
            email=admin_email,
            password=admin_password,
            name=admin_name,
            role=Role.ADMINISTRATOR,
            approved=True,
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")

    click.echo(f"PASS Created administrator: {user.username} ({user.email})")
    click.echo("DONE TechSheet initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("This will delete ALL data. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('list')
@click.option('--status', type=click.Choice(['pending', 'approved']), help='Filter on approval state')
@with_appcontext
def list_users(status):
    """List all users with role and approval state."""
    approved = None if status is None else status == 'approved'
    users = auth_service.list_users(approved=approved)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<15} {'Approved':<9} {'Groups'}")
    click.echo("="*100)

    for user in users:
        approved_str = "Yes" if user.approved else "No"
        groups_str = ", ".join(user.allowed_groups or []) or "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<15} {approved_str:<9} {groups_str}")

    click.echo("="*100 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--name', prompt=True)
@click.option('--company', default=None)
@click.password_option('--password')
@click.option('--role', type=click.Choice([r.value for r in Role]), default=Role.GUEST.value, show_default=True)
@click.option('--approved', is_flag=True, help='Create the account already approved')
@with_appcontext
def create_user_cli(username, email, name, company, password, role, approved):
    """Create a user account."""
    try:
        user = auth_service.create_user(
            username=username,
            email=email,
            password=password,
            name=name,
            company=company,
            role=role,
            approved=approved,
        )
    except (DuplicateUsernameError, ValidationError) as e:
        raise click.ClickException(str(e))

    state = "approved" if user.approved else "pending"
    click.echo(f"PASS Created user {user.username} (ID: {user.id}) role={user.role} {state}")


@users_group.command('approve')
@click.argument('username')
@click.option('--role', type=click.Choice([r.value for r in Role if r is not Role.GUEST]), default=None)
@click.option('--group', 'groups', multiple=True, type=int, help='Allowed group id (repeatable)')
@with_appcontext
def approve_user_cli(username, role, groups):
    """Approve a pending account."""
    user = _require_username(username)
    try:
        user = account_service.approve_user(
            user.id,
            role=role,
            allowed_groups=list(groups) if groups else None,
        )
    except (ValidationError, InvalidTransitionError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Approved {user.username} as {user.role}")


@users_group.command('set-role')
@click.argument('username')
@click.argument('role', type=click.Choice([r.value for r in Role if r is not Role.GUEST]))
@with_appcontext
def set_role_cli(username, role):
    """Change the role of an approved account."""
    user = _require_username(username)
    try:
        user = account_service.change_role(user.id, role)
    except (ValidationError, InvalidTransitionError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS {user.username} is now {user.role}")


@users_group.command('set-password')
@click.argument('username')
@click.password_option('--password')
@with_appcontext
def set_password_cli(username, password):
    """Reset a password; every open session of the user is revoked."""
    user = _require_username(username)
    try:
        auth_service.set_password(user.id, password)
    except PasswordValidationError as e:
        raise click.ClickException(str(e))

    revoked = session_service.revoke_all_user_sessions(user.id, reason="Password reset")
    click.echo(f"PASS Password updated for {user.username}; {revoked} sessions revoked")


@click.group('suggestions')
def suggestions_group():
    """Autocomplete index commands."""


@suggestions_group.command('rebuild')
@with_appcontext
def rebuild_suggestions_cli():
    """Recreate the suggestion index from stored products."""
    count = suggestion_service.rebuild_index()
    click.echo(f"PASS Suggestion index rebuilt: {count} values")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked session tokens past the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} session tokens older than {retention_days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=180, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 180 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(suggestions_group)
    app.cli.add_command(maintenance_group)
