# Overview: Flask CLI command groups for bootstrap, tenant setup, and ledger maintenance.

# backend/laundrypos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to laundrypos (PowerShell: $env:FLASK_APP="laundrypos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop (tenant) management:
# - python -m flask shops list
# - python -m flask shops create --name "Sparkle Laundry" --phone "+254700000000"
# - python -m flask shops set-status 1 GRACE --reason "Invoice overdue"
#
# Customers:
# - python -m flask customers create --shop-id 1 --name "Jane Doe" --phone "+254711111111"
#
# Ledger maintenance:
# - python -m flask ledger reconcile [--shop-id 1]
#   Report orders whose paid total or balance disagrees with their payments.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Order, Shop
from .models.tenancy import SUBSCRIPTION_STATUSES
from .services.ledger_service import find_ledger_discrepancies


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the financial history!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


# =============================================================================
# SHOP MANAGEMENT COMMANDS
# =============================================================================

@click.group('shops')
def shops_group():
    """Shop (tenant) management commands."""


@shops_group.command('list')
@with_appcontext
def list_shops():
    """List all shops with their subscription status."""
    shops = db.session.query(Shop).order_by(Shop.id).all()

    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Status':<12} {'Customers':<10} {'Orders'}")
    click.echo("="*80)

    for shop in shops:
        customer_count = db.session.query(Customer).filter_by(shop_id=shop.id).count()
        order_count = db.session.query(Order).filter_by(shop_id=shop.id).count()
        click.echo(
            f"{shop.id:<5} {shop.name:<30} {shop.subscription_status:<12} {customer_count:<10} {order_count}"
        )

    click.echo("="*80 + "\n")


@shops_group.command('create')
@click.option('--name', required=True, help='Business name')
@click.option('--phone', default=None, help='Contact phone number')
@click.option('--location', default=None, help='Shop location')
@with_appcontext
def create_shop_cli(name, phone, location):
    """Create a new shop (tenant)."""
    shop = Shop(name=name, phone=phone, location=location)
    db.session.add(shop)
    db.session.commit()

    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")


@shops_group.command('set-status')
@click.argument('shop_id', type=int)
@click.argument('status', type=click.Choice(SUBSCRIPTION_STATUSES, case_sensitive=False))
@click.option('--reason', default=None, help='Suspension reason shown to support staff')
@with_appcontext
def set_shop_status_cli(shop_id, status, reason):
    """Set a shop's subscription status (ACTIVE, GRACE, SUSPENDED)."""
    shop = db.session.query(Shop).filter_by(id=shop_id).first()
    if not shop:
        click.echo(f"FAIL Shop ID {shop_id} not found")
        return

    shop.subscription_status = status.upper()
    shop.suspension_reason = reason
    db.session.commit()

    click.echo(f"PASS Shop {shop.id} is now {shop.subscription_status}")


# =============================================================================
# CUSTOMER COMMANDS
# =============================================================================

@click.group('customers')
def customers_group():
    """Customer bootstrap commands."""


@customers_group.command('create')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--name', required=True, help='Customer name')
@click.option('--phone', required=True, help='Customer phone number')
@with_appcontext
def create_customer_cli(shop_id, name, phone):
    """Create a customer in a shop."""
    shop = db.session.query(Shop).filter_by(id=shop_id).first()
    if not shop:
        click.echo(f"FAIL Shop ID {shop_id} not found")
        return

    customer = Customer(shop_id=shop_id, name=name, phone_number=phone)
    db.session.add(customer)
    db.session.commit()

    click.echo(f"PASS Created customer: {customer.name} (ID: {customer.id}) in shop '{shop.name}'")


# =============================================================================
# LEDGER MAINTENANCE
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Ledger inspection and maintenance commands."""


@ledger_group.command('reconcile')
@click.option('--shop-id', type=int, default=None, help='Only check this shop')
@with_appcontext
def reconcile_ledger_cli(shop_id):
    """Report orders whose ledger columns disagree with their payments."""
    discrepancies = find_ledger_discrepancies(shop_id=shop_id)

    if not discrepancies:
        click.echo("PASS Ledger is consistent.")
        return

    click.echo(f"FAIL {len(discrepancies)} order(s) out of balance:")
    for row in discrepancies:
        click.echo(
            f"  order {row['order_id']} (shop {row['shop_id']}): "
            f"paid={row['amount_paid_cents']} payments={row['payments_total_cents']} "
            f"balance={row['balance_cents']} expected={row['expected_balance_cents']}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(customers_group)
    app.cli.add_command(ledger_group)
