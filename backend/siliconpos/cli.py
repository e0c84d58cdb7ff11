# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/siliconpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app siliconpos <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app siliconpos system init
#   Idempotent bootstrap: creates tables and the default admin/manager/sales users.
# - flask --app siliconpos system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - flask --app siliconpos users list
#   List all users with roles and active status.
# - flask --app siliconpos users create --username jane --password "Password123!" --role sales
#   Create a user (prompts if options are omitted).
#
# Catalog:
# - flask --app siliconpos catalog seed
#   Insert sample networking/CCTV/intercom products and services (skipped if products exist).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_SALES
from .services import catalog_service
from .services.auth_service import create_user, PasswordValidationError


DEFAULT_USERS = (
    ("admin", "Administrator", ROLE_ADMIN),
    ("manager", "Store Manager", ROLE_MANAGER),
    ("sales", "Sales Associate", ROLE_SALES),
)
DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and default users.

    Safe to run multiple times: existing users are left untouched.
    """
    click.echo("START Initializing SiliconPOS...")
    db.create_all()
    click.echo("PASS Tables ready")

    click.echo("\nUSERS Creating default users...")
    for username, name, role in DEFAULT_USERS:
        if db.session.query(User.id).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(username, DEFAULT_PASSWORD, name=name, role=role)
            click.echo(f"PASS Created user: {username} with role '{role}'")
        except (PasswordValidationError, ValueError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {str(e)}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for username, _, _ in DEFAULT_USERS:
        click.echo(f"   {username:<9} / {DEFAULT_PASSWORD}")
    click.echo("")


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

    click.echo("PASS Database reset complete. Run 'flask --app siliconpos system init' to initialize.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', default=None, help='Display name (defaults to username)')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, name, email, password, role):
    """Create a staff account."""
    try:
        user = create_user(username, password, name=name, email=email, role=role)
        click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<10} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<25} {user.role:<10} {active_str}")

    click.echo("="*80 + "\n")


# =============================================================================
# CATALOG COMMANDS
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Catalog bootstrap commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog_cli():
    """Insert the sample catalog."""
    products, services = catalog_service.seed_catalog()
    if not products and not services:
        click.echo("WARN  Catalog already has products, skipping...")
        return
    click.echo(f"PASS Inserted {products} products and {services} services")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
