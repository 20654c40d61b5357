# Overview: Flask CLI command groups for database bootstrap, cache and stock inspection.

# backend/agency/cli.py
# Commands (run from the backend directory with FLASK_APP=agency):
# - flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask cache invalidate [brand|product|customer|all]
#   Drop cached list views for one table or all of them.
# - flask stock show <product_id>
#   Print a product's current stock_count straight from the database.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Product


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping all data.')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every table."""
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


@click.group('cache')
def cache_group():
    """List cache maintenance."""


@cache_group.command('invalidate')
@click.argument('table', type=click.Choice(['brand', 'product', 'customer', 'all']), default='all')
@with_appcontext
def invalidate_cache(table):
    cache = current_app.extensions["list_cache"]
    keys = current_app.extensions["cache_keys"]
    if not cache.enabled:
        click.echo("Cache is disabled (REDIS_URL not set).")
        return
    prefixes = keys.all_prefixes() if table == 'all' else [f"{keys.prefix}:{table}"]
    deleted = sum(cache.invalidate_by_prefix(prefix) for prefix in prefixes)
    click.echo(f"Invalidated {deleted} cached list(s).")


@click.group('stock')
def stock_group():
    """Stock inspection."""


@stock_group.command('show')
@click.argument('product_id')
@with_appcontext
def show_stock(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        raise click.ClickException(f"Product not found: {product_id}")
    click.echo(f"{product.id}\t{product.name}\tstock_count={product.stock_count}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(cache_group)
    app.cli.add_command(stock_group)
