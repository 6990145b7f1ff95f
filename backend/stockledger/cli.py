# Overview: Flask CLI command groups for bootstrap, inspection, and ledger checks.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask system seed-demo
#   Idempotent: create admin/manager/staff users and a few demo products.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username jdoe --role staff --full-name "Jane Doe"
#
# Permissions:
# - python -m flask perms list [--role manager] [--category STOCK]
# - python -m flask perms check staff stock.adjust
#
# Ledger:
# - python -m flask ledger reconcile [--product-id 1]
#   Exit code 1 when any product disagrees with its audit trail.

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .permissions import (
    PERMISSION_DEFINITIONS,
    ROLES,
    get_role_permissions,
    has_permission,
    is_known_role,
)
from .services import audit_service, products_service, user_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Create default users and demo products.

    Users: admin (admin), manager (manager), staff (staff)
    Products: three SKUs with opening stock, one of them already low.
    """
    click.echo("START Seeding demo data...")

    for username, role, full_name in (
        ("admin", "admin", "Admin User"),
        ("manager", "manager", "John Manager"),
        ("staff", "staff", "Sam Staff"),
    ):
        try:
            user = user_service.create_user(username=username, role=role, full_name=full_name)
            click.echo(f"PASS Created user: {username} (ID: {user.id}) with role '{role}'")
        except LedgerError as e:
            click.echo(f"WARN  {e.message}, skipping...")

    demo_products = [
        {"sku": "LAP-001", "name": "Laptop 14in", "stock_quantity": 25, "min_stock_level": 5, "max_stock_level": 50},
        {"sku": "CHR-010", "name": "Office Chair", "stock_quantity": 40, "min_stock_level": 10, "max_stock_level": 100},
        {"sku": "CBL-100", "name": "USB-C Cable", "stock_quantity": 3, "min_stock_level": 20, "max_stock_level": 200},
    ]
    for patch in demo_products:
        try:
            product = products_service.create_product(patch=patch)
            click.echo(f"PASS Created product: {product.sku} (ID: {product.id}) qty={product.stock_quantity}")
        except LedgerError as e:
            click.echo(f"WARN  {e.message}, skipping...")

    click.echo("DONE Demo data ready")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = user_service.list_users()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<8} {status}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--role', type=click.Choice(ROLES), prompt=True)
@click.option('--full-name', default=None)
@with_appcontext
def create_user(username, role, full_name):
    try:
        user = user_service.create_user(username=username, role=role, full_name=full_name)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('perms')
def perms_group():
    """Inspect the role -> capability table."""


@perms_group.command('list')
@click.option('--role', default=None, help='Only capabilities granted to this role')
@click.option('--category', default=None, help='Only capabilities in this category')
def list_permissions(role, category):
    if role is not None and not is_known_role(role):
        raise click.ClickException(f"Unknown role: {role}")

    granted = get_role_permissions(role) if role else None
    for code, name, description, perm_category in PERMISSION_DEFINITIONS:
        if category and perm_category != category:
            continue
        if granted is not None and code not in granted:
            continue
        click.echo(f"{code:<26} {perm_category:<16} {description}")


@perms_group.command('check')
@click.argument('role')
@click.argument('capability')
def check_permission(role, capability):
    """Exit code 0 when granted, 1 when denied."""
    if has_permission(role, capability):
        click.echo(f"GRANTED {role} -> {capability}")
        return
    click.echo(f"DENIED {role} -> {capability}")
    raise SystemExit(1)


@click.group('ledger')
def ledger_group():
    """Stock ledger checks."""


@ledger_group.command('reconcile')
@click.option('--product-id', type=int, default=None)
@with_appcontext
def reconcile(product_id):
    """Compare each product's stock with its approved movements."""
    try:
        if product_id is not None:
            reports = [audit_service.reconcile_product(product_id)]
        else:
            reports = audit_service.reconcile_all_products()
    except LedgerError as e:
        raise click.ClickException(e.message)

    failures = 0
    for report in reports:
        if report["is_consistent"]:
            click.echo(
                f"PASS {report['sku']}: stock={report['stock_quantity']} "
                f"(opening {report['opening_quantity']} + {report['approved_delta_total']} "
                f"over {report['approved_movements']} movements)"
            )
        else:
            failures += 1
            click.echo(
                f"FAIL {report['sku']}: stock={report['stock_quantity']} "
                f"expected={report['expected_quantity']} breaks={report['chain_breaks']}"
            )

    if not reports:
        click.echo("No products found")
    if failures:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(ledger_group)
