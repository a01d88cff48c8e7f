# Overview: Flask CLI command groups for bootstrap and owner provisioning.

# backend/tireplan/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create tables, the unlisted-product placeholder and a super-admin login.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Load the demo owners, branches, catalog and customers (empty database only).
#
# Owner provisioning:
# - python -m flask owners list
#   List owner accounts with their branches.
# - python -m flask owners create --name "홍길동" --region 01 --phone 010-0000-0000 --branch-name "강남점"
#   Provision an owner with one branch; prints the generated login ID.
# - python -m flask owners reset-password 250001
#   Restore the default password and end the owner's sessions.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLE_SUPER_ADMIN
from .services import auth_service, tenant_service
from .services.inventory_service import ensure_placeholder_product
from .services.seed_service import seed_demo
from .services.tenant_service import TenantError


SUPER_ADMIN_ID = "999999"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@click.option('--admin-id', default=SUPER_ADMIN_ID, help='Login ID for the super-admin')
@with_appcontext
def init_db(admin_id):
    """
    Idempotent bootstrap.

    Creates all tables, the placeholder product that unlisted register
    lines point at, and a super-admin with the default password when no
    super-admin exists yet.
    """
    click.echo("START Initializing database...")
    db.create_all()

    ensure_placeholder_product()
    db.session.commit()
    click.echo("PASS Placeholder product ready")

    admin = db.session.query(User).filter_by(role=ROLE_SUPER_ADMIN).first()
    if admin:
        click.echo(f"PASS Using existing super-admin: {admin.id}")
        return

    admin = User(
        id=admin_id,
        name="Master",
        role=ROLE_SUPER_ADMIN,
        password_hash=auth_service.hash_password(current_app.config["DEFAULT_OWNER_PASSWORD"]),
        is_active=True,
    )
    db.session.add(admin)
    db.session.commit()
    click.echo(f"PASS Created super-admin {admin.id} with the default password")
    click.echo("WARN Change it immediately in production!")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' or 'seed-demo' next.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo_cli():
    """Load the demo data set into an empty database."""
    db.create_all()
    if not seed_demo():
        click.echo("SKIP Users already exist; demo data not loaded")
        return
    db.session.commit()
    click.echo("PASS Demo data loaded (owners 250001, 250002; super-admin 999999; password 1234)")


@click.group('owners')
def owners_group():
    """Owner (tenant) provisioning."""


@owners_group.command('list')
@with_appcontext
def list_owners_cli():
    """List all owners with their branches."""
    owners = tenant_service.list_owners()

    if not owners:
        click.echo("No owners found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<8} {'Name':<20} {'Phone':<16} {'Active':<8} {'Branches'}")
    click.echo("="*80)

    for owner in owners:
        active_str = "Yes" if owner["is_active"] else "No"
        branches = ", ".join(s["name"] for s in owner["stores"]) or "-"
        click.echo(f"{owner['id']:<8} {owner['name']:<20} {owner['phone_number'] or '-':<16} {active_str:<8} {branches}")

    click.echo("="*80 + "\n")


@owners_group.command('create')
@click.option('--name', required=True, help='Owner name')
@click.option('--region', required=True, help='Region code (01 서울 ... 08 제주)')
@click.option('--phone', default=None, help='Contact phone number')
@click.option('--branch-name', default=None, help='First branch name (defaults to "<name> 1호점")')
@with_appcontext
def create_owner_cli(name, region, phone, branch_name):
    """Provision an owner with one branch."""
    try:
        owner, store = tenant_service.create_owner(name, region, phone, branch_name)
        db.session.commit()
    except TenantError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created owner {owner.name} (ID: {owner.id}) with branch {store.name} (ID: {store.id})")
    click.echo(f"   Initial password: {current_app.config['DEFAULT_OWNER_PASSWORD']}")


@owners_group.command('reset-password')
@click.argument('owner_id')
@with_appcontext
def reset_password_cli(owner_id):
    """Restore an owner's default password."""
    try:
        owner = tenant_service.reset_password(owner_id)
        db.session.commit()
    except TenantError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Password reset for {owner.id}; active sessions ended")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(owners_group)
