# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent: creates tables' seed rows (roles, permissions, Extra warehouse, default admin).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username admin --email admin@stockdesk.local --password "Password123!" --role admin
#
# Inventory:
# - python -m flask inventory reconcile
#   Recompute balances from the movement log and report drift.
# - python -m flask inventory low-stock
#   List active products at or below their low-stock threshold.
#
# Notifications:
# - python -m flask notifications show
#   Print the derived notification list.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import create_user, create_default_roles, assign_role, PasswordValidationError
from .services import permission_service
from .services.notification_service import derive_notifications, low_stock_products
from .services.stock_ledger_service import reconcile_balances
from .services.warehouse_service import get_or_create_extra_warehouse
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-password', default='Password123!', help='Password for the default admin user')
@with_appcontext
def init_system(admin_password):
    """
    Initialize roles, permissions, the Extra warehouse and a default admin.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing system...")

    db.create_all()

    create_default_roles()
    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")

    extra = get_or_create_extra_warehouse()
    click.echo(f"PASS Extra warehouse: {extra.name} (ID: {extra.id})")

    if db.session.query(User).filter_by(username="admin").first():
        click.echo("SKIP admin user already exists")
    else:
        try:
            user = create_user("admin", "admin@stockdesk.local", admin_password, full_name="Administrator",
                               roles=["admin"])
            click.echo(f"PASS Created admin user (ID: {user.id})")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {str(e)}")
            return

    click.echo("DONE System initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DANGER: Drop all tables and recreate schema."""
    if not yes and not click.confirm("This will DELETE ALL DATA. Continue?"):
        click.echo("Aborted")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.username).all()
    if not users:
        click.echo("No users found")
        return
    for u in users:
        roles = ", ".join(ur.role.name for ur in u.user_roles) or "-"
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.username:<20} {u.email:<32} {status:<8} [{roles}]")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'manager', 'cashier']), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, email, password, role, full_name):
    """
    Create a new user.

    Password must be 8+ chars with upper, lower, digit and special char.
    """
    try:
        user = create_user(username=username, email=email, password=password, full_name=full_name)
        assign_role(user.id, role)
        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@click.group('inventory')
def inventory_group():
    """Stock ledger inspection and repair."""


@inventory_group.command('reconcile')
@with_appcontext
def reconcile_cli():
    """Rebuild balances from the movement log."""
    drifted = reconcile_balances()
    if not drifted:
        click.echo("PASS All balances match the movement log")
        return
    for row in drifted:
        click.echo(
            f"FIXED product={row['product_id']} warehouse={row['warehouse_id']} "
            f"recorded={row['recorded']} expected={row['expected']}"
        )
    click.echo(f"DONE Corrected {len(drifted)} balance(s)")


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List products at or below their threshold."""
    rows = low_stock_products()
    if not rows:
        click.echo("No low stock products")
        return
    for row in rows:
        click.echo(f"{row['product_id']:>5}  {row['name']:<40} {row['total_stock']:>6} / {row['threshold']}")


@click.group('notifications')
def notifications_group():
    """Derived notifications."""


@notifications_group.command('show')
@with_appcontext
def show_notifications():
    """Print the current notification list."""
    items = derive_notifications()
    if not items:
        click.echo("No notifications")
        return
    for n in items:
        click.echo(f"[{n.type.upper():<7}] {n.title}: {n.message}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(notifications_group)
