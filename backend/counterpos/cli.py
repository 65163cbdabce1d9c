# Overview: Flask CLI command groups for bootstrap, seeding, and stock inspection.

# backend/counterpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Load the sample cafe menu (skips products that already exist by name).
# - python -m flask catalog low-stock
#   Print products at or below their low-stock threshold.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Product

# name, description, category, price_cents, current_stock, unit, low_stock_threshold
SAMPLE_PRODUCTS = [
    ("Americano", "Classic black coffee", "beverage", 8000, 50, "cups", 10),
    ("Cappuccino", "Espresso with steamed milk", "beverage", 10000, 45, "cups", 10),
    ("Latte", "Espresso with hot milk", "beverage", 11000, 40, "cups", 10),
    ("Iced Coffee", "Cold brewed coffee with ice", "beverage", 9500, 35, "cups", 10),
    ("Mocha", "Espresso with chocolate and milk", "beverage", 12000, 30, "cups", 10),
    ("Macchiato", "Espresso marked with milk foam", "beverage", 10500, 25, "cups", 10),
    ("Hot Chocolate", "Rich chocolate beverage", "beverage", 8500, 20, "cups", 8),
    ("Pastry - Croissant", "Butter croissant", "food", 4500, 30, "pieces", 5),
    ("Pastry - Muffin", "Chocolate chip muffin", "food", 5000, 25, "pieces", 5),
    ("Cake Slice", "Chocolate or vanilla cake", "food", 6500, 15, "pieces", 3),
    ("Sandwich - Ham & Cheese", "Fresh sandwich with ham and cheese", "food", 13000, 12, "pieces", 5),
    # Internal stock, never offered at the kiosk
    ("Coffee Beans - Robusta", "Premium robusta beans", "ingredient", 60000, 5, "kg", 2),
    ("Fresh Milk", "Fresh cow milk", "ingredient", 18000, 3, "liters", 1),
    ("Chocolate Syrup", "Rich chocolate syrup", "ingredient", 25000, 2, "liters", 1),
]


def _services():
    return current_app.extensions["counterpos"]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables. Existing data is left untouched."""
    db.create_all()
    click.echo("PASS Database tables ready.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask catalog seed' to load sample products.")


@click.group('catalog')
def catalog_group():
    """Product catalog and stock commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Load the sample menu. Products whose name already exists are skipped."""
    catalog = _services().catalog
    existing = {name for (name,) in db.session.query(Product.name).all()}

    created = 0
    for name, description, category, price_cents, stock, unit, threshold in SAMPLE_PRODUCTS:
        if name in existing:
            click.echo(f"SKIP {name} (exists)")
            continue
        product = catalog.create_product(
            name=name,
            category=category,
            price_cents=price_cents,
            current_stock=stock,
            low_stock_threshold=threshold,
            unit=unit,
            description=description,
        )
        created += 1
        click.echo(f"PASS Created {product.name} (ID: {product.id}, stock: {stock} {unit})")

    click.echo(f"DONE {created} product(s) created.")


@catalog_group.command('low-stock')
@with_appcontext
def low_stock():
    """List products at or below their low-stock threshold."""
    products = _services().stock.low_stock()
    if not products:
        click.echo("No products are low on stock.")
        return

    for p in products:
        click.echo(
            f"{p.id:>4}  {p.name:<28} {p.current_stock:>5} {p.unit:<8} "
            f"(threshold {p.low_stock_threshold}, short {p.low_stock_threshold - p.current_stock})"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
