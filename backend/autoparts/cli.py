# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/autoparts/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, default settings, and the default admin/staff users.
# - python -m flask system seed
#   Load a small demo catalog (categories, a supplier, parts, one discount code).
# - python -m flask system reset-db --yes
#   Wipe the database and recreate empty tables (development only).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email admin@autoparts.local --password "Password123!" --role admin
#   Add an account; missing options are prompted for.
#
# Inventory:
# - python -m flask inventory low-stock
#   Print items at or below their reorder level.
# - python -m flask alerts low-stock
#   E-mail the low-stock list to the notification address in settings.
#
# Held orders:
# - python -m flask held list
#   Show carts parked at this register.

import click
from flask.cli import with_appcontext

from .errors import RetailError
from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN, ROLE_STAFF, ROLES
from .money import format_cents
from .services import catalog_service, discount_service, inventory_service, notification_service, settings_service
from .services.auth_service import create_user, PasswordValidationError
from .services.held_order_service import HeldOrderStore


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and default users. Safe to run more than once.

    Default password meets requirements:
    - Minimum 8 characters
    - Uppercase, lowercase, digit, special char
    """
    click.echo("START Initializing Auto Parts system...")
    db.create_all()
    click.echo("PASS Tables ready")

    default_password = "Password123!"
    default_users = [
        ("admin@autoparts.local", "Store Admin", ROLE_ADMIN),
        ("staff@autoparts.local", "Counter Staff", ROLE_STAFF),
    ]

    for email, full_name, role in default_users:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            create_user(email, default_password, full_name=full_name, role=role)
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except RetailError as e:
            click.echo(f"FAIL Failed to create user '{email}': {e.message}")

    settings = settings_service.load_settings()
    click.echo(f"PASS Store: {settings.business_name} (tax {settings.to_dict()['tax_rate']}%, {settings.currency})")

    click.echo("\n" + "="*60)
    click.echo("DONE Auto Parts System Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin -> admin@autoparts.local / Password123!")
    click.echo("   staff -> staff@autoparts.local / Password123!")
    click.echo("")


@system_group.command('seed')
@with_appcontext
def seed_demo():
    """Load a small demo catalog. Requires `system init` first."""
    admin = db.session.query(User).filter_by(role=ROLE_ADMIN, is_active=True).first()
    if admin is None:
        click.echo("FAIL No admin user exists. Run: python -m flask system init")
        return

    categories = ["Brakes", "Filters", "Electrical", "Engine"]
    existing = {c["name"] for c in catalog_service.list_categories()}
    category_ids = {c["name"]: c["id"] for c in catalog_service.list_categories()}
    for name in categories:
        if name in existing:
            continue
        category = catalog_service.create_category({"name": name}, user=admin)
        category_ids[name] = category.id
        click.echo(f"PASS Created category: {name}")

    suppliers = catalog_service.list_suppliers(search="Parts Depot")
    if suppliers:
        supplier_id = suppliers[0]["id"]
    else:
        supplier_id = catalog_service.create_supplier(
            {"name": "Parts Depot", "contact_person": "Sam Reyes", "email": "orders@partsdepot.example", "phone": "555-0100"},
            user=admin,
        ).id
        click.echo("PASS Created supplier: Parts Depot")

    parts = [
        ("Brake Pad Set", "BP-1001", "Brakes", "Bosch", 2010, 2018, 12, 2200, 4599, 4),
        ("Oil Filter", "OF-2002", "Filters", "Fram", 2005, 2020, 40, 350, 899, 10),
        ("Air Filter", "AF-2003", "Filters", "K&N", 2012, 2022, 3, 1200, 2499, 5),
        ("Spark Plug", "SP-3004", "Electrical", "NGK", 2000, 2015, 60, 180, 599, 20),
        ("Alternator", "AL-3005", "Electrical", "Denso", 2008, 2016, 2, 9800, 18999, 2),
        ("Timing Belt", "TB-4006", "Engine", "Gates", 2006, 2014, 7, 2500, 5499, 3),
    ]
    for name, number, category, brand, year_from, year_to, qty, cost, price, reorder in parts:
        try:
            inventory_service.create_item({
                "part_name": name,
                "part_number": number,
                "category_id": category_ids[category],
                "supplier_id": supplier_id,
                "brand": brand,
                "year_from": year_from,
                "year_to": year_to,
                "quantity": qty,
                "cost_price_cents": cost,
                "selling_price_cents": price,
                "reorder_level": reorder,
            }, user=admin)
            click.echo(f"PASS Created part: {number} {name}")
        except RetailError as e:
            click.echo(f"WARN  {number}: {e.message}")

    try:
        discount_service.create_discount(
            {"code": "WELCOME10", "description": "10% off first visit", "discount_type": "percentage", "discount_value": 1000},
            user=admin,
        )
        click.echo("PASS Created discount: WELCOME10")
    except RetailError as e:
        click.echo(f"WARN  WELCOME10: {e.message}")

    click.echo("DONE Demo data loaded")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Do not ask before wiping')
@with_appcontext
def reset_db(yes):
    """Drop every table and build an empty schema. Sales, stock and users are lost."""
    if not yes:
        click.confirm("WARN Every sale, part and user will be erased. Continue?", abort=True)

    db.drop_all()
    click.echo("PASS Tables dropped")
    db.create_all()
    click.echo("PASS Empty schema created")
    click.echo("NEXT Run 'python -m flask system init' to add the default users.")


# =============================================================================
# USER COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Login e-mail')
@click.option('--full-name', default=None, help='Name printed on receipts')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Initial password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='admin or staff')
@with_appcontext
def create_user_cli(email, full_name, password, role):
    """Add a cashier or admin account. The password needs 8+ chars with upper, lower, digit and symbol."""
    try:
        user = create_user(email, password, full_name=full_name, role=role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Weak password: {e.message}")
        raise SystemExit(1)
    except RetailError as e:
        click.echo(f"FAIL Could not create user: {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created {user.role} account {user.email}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<20} {'Role':<8} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {(user.full_name or '-'):<20} {user.role:<8} {active_str}")

    click.echo("="*80 + "\n")


# =============================================================================
# INVENTORY / ALERT COMMANDS
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List items at or below their reorder level."""
    items = inventory_service.low_stock_items()
    if not items:
        click.echo("PASS No low stock items")
        return

    click.echo(f"\nWARN {len(items)} item(s) need restocking")
    click.echo("="*80)
    click.echo(f"{'Part #':<14} {'Name':<30} {'Qty':>5} {'Reorder':>8} {'Price':>12}")
    click.echo("="*80)
    for item in items:
        click.echo(
            f"{item.part_number:<14} {item.part_name[:30]:<30} {item.quantity:>5} "
            f"{item.reorder_level:>8} {format_cents(item.selling_price_cents):>12}"
        )
    click.echo("="*80 + "\n")


@click.group('alerts')
def alerts_group():
    """Outbound notification commands."""


@alerts_group.command('low-stock')
@with_appcontext
def send_low_stock_cli():
    """E-mail the low-stock list to the configured notification address."""
    try:
        result = notification_service.send_low_stock_alert()
    except RetailError as e:
        click.echo(f"FAIL Low-stock alert not sent: {e.message}")
        raise SystemExit(1)

    if result["items_count"] == 0:
        click.echo("PASS No low stock items found; nothing sent")
    else:
        click.echo(f"PASS Alert sent for {result['items_count']} item(s) (id: {result.get('email_id') or '-'})")


# =============================================================================
# HELD ORDER COMMANDS
# =============================================================================

@click.group('held')
def held_group():
    """Held (parked) order commands."""


@held_group.command('list')
@with_appcontext
def list_held_cli():
    """Show parked carts."""
    try:
        orders = HeldOrderStore().list()
    except RetailError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    if not orders:
        click.echo("No held orders.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<34} {'Held at':<21} {'Items':>5} {'Subtotal':>12}  Customer")
    click.echo("="*80)
    for order in orders:
        click.echo(
            f"{order.id:<34} {order.held_at.strftime('%Y-%m-%d %H:%M'):<21} {order.cart.item_count():>5} "
            f"{format_cents(order.cart.subtotal_cents()):>12}  {order.customer_name or '-'}"
        )
    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(alerts_group)
    app.cli.add_command(held_group)
