# backend/agency/__init__.py
from __future__ import annotations

import os

from flask import Flask

from .config import Config
from .extensions import db, migrate
from .services.list_cache import CacheKeys, ListCache

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "migrations")


def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)

    # Cache handle is built here and injected into services, never imported globally
    app.extensions["list_cache"] = ListCache.from_url(
        app.config.get("REDIS_URL"),
        default_ttl=app.config["CACHE_TTL_LIST"],
    )
    app.extensions["cache_keys"] = CacheKeys(app.config["CACHE_KEY_PREFIX"])

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.orders import orders_bp
    from .routes.catalog import catalog_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(catalog_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
