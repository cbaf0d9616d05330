# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/loja/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create any missing tables (idempotent). Prefer 'flask db upgrade' once migrations are in use.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Product inspection/bootstrap:
# - python -m flask products list
#   List products with code, price and stock.
# - python -m flask products create --code 789100 --name "Blue shirt" --price-cents 4990
#   Create a product (stock starts at 0; receive a purchase to stock it).
#
# Installment inspection:
# - python -m flask installments late [--today 2024-03-01]
#   List pending installments past their due date.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services import catalog_service, installment_service
from .validation import ConflictError, ValidationError, parse_date


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    click.echo("START Initializing database...")
    db.create_all()
    product_count = db.session.query(Product).count()
    click.echo(f"PASS Schema ready ({product_count} products).")


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

    click.echo("PASS Database reset complete.")


@click.group('products')
def products_group():
    """Product inspection and bootstrap commands."""


@products_group.command('list')
@with_appcontext
def list_products_cli():
    """List products with code, price and stock."""
    products = catalog_service.list_products()
    if not products:
        click.echo("No products.")
        return
    for p in products:
        click.echo(f"{p.id:>5}  {p.code:<20} {p.name:<40} {p.price_cents:>10}c  stock={p.stock}")


@products_group.command('create')
@click.option('--code', prompt=True, help='Scan code (unique)')
@click.option('--name', prompt=True, help='Product name')
@click.option('--price-cents', type=int, prompt=True, help='Sale price in cents')
@click.option('--description', default=None, help='Optional description')
@with_appcontext
def create_product_cli(code, name, price_cents, description):
    """Create a product. Stock starts at 0."""
    try:
        product = catalog_service.create_product(patch={
            "code": code,
            "name": name,
            "price_cents": price_cents,
            "description": description,
        })
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created product {product.code} (ID: {product.id})")


@click.group('installments')
def installments_group():
    """Installment inspection commands."""


@installments_group.command('late')
@click.option('--today', default=None, help='Reference date (YYYY-MM-DD), defaults to the server date')
@with_appcontext
def late_installments_cli(today):
    """List pending installments past their due date."""
    ref = parse_date(today, "today") if today else None
    late = installment_service.list_late_installments(ref)
    if not late:
        click.echo("No late installments.")
        return
    for i in late:
        click.echo(f"sale={i.sale_id:>5} installment={i.id:>5} due={i.due_date.isoformat()} value={i.value_cents}c")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(installments_group)
