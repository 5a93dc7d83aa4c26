import logging
import os
from typing import Any

from flask import Flask, jsonify
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.pool import StaticPool

from .config import ENV_DIAGNOSTICS
from .extensions import db, migrate
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

PRODUCTION_SERVICE_KEY = "production_service"


def create_app(config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    os.makedirs(app.instance_path, exist_ok=True)

    _load_base_config(app, config)
    _configure_sqlite_engine_options(app)

    db.init_app(app)
    migrate.init_app(app, db)
    from . import models  # noqa: F401  # ensure models registered for Alembic

    _register_blueprints(app)
    _install_error_handlers(app)
    configure_logging(app)
    _install_production_service(app)

    from .management import register_commands

    register_commands(app)
    return app


def _load_base_config(app: Flask, config: dict[str, Any] | None) -> None:
    app.config.from_object("bakehouse.config.Config")
    if config:
        app.config.update(config)
    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)

    if config and "DATABASE_URL" in config:
        app.config["SQLALCHEMY_DATABASE_URI"] = config["DATABASE_URL"]


def _configure_sqlite_engine_options(app: Flask) -> None:
    """Configure SQLite engine options for testing/memory databases"""
    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if app.config.get("TESTING") or uri.startswith("sqlite"):
        opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS", {}))
        # SQLite rejects the pool sizing used for Postgres
        for key in ("pool_size", "max_overflow", "pool_timeout"):
            opts.pop(key, None)
        if uri == "sqlite:///:memory:":
            opts["poolclass"] = StaticPool
            opts["connect_args"] = {"check_same_thread": False}
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts


def _register_blueprints(app: Flask) -> None:
    from .blueprints.production import production_bp

    app.register_blueprint(production_bp)


def _install_error_handlers(app: Flask) -> None:
    from .services.production.errors import ProductionError

    @app.teardown_request
    def _rollback_on_error(exc):
        if exc is not None:
            db.session.rollback()

    @app.errorhandler(ProductionError)
    def _production_error(err: ProductionError):
        if err.status_code >= 500:
            logger.error("Production request failed: %s", err)
        return jsonify({"success": False, "error": str(err), "code": err.error_code}), err.status_code

    @app.errorhandler(OperationalError)
    @app.errorhandler(DBAPIError)
    def _db_error_handler(err):
        logger.exception("Database error while handling request")
        db.session.rollback()
        return jsonify({"success": False, "error": "Service temporarily unavailable", "code": "DATABASE_ERROR"}), 503


def _install_production_service(app: Flask) -> None:
    from .services.production import build_production_service

    if PRODUCTION_SERVICE_KEY not in app.extensions:
        app.extensions[PRODUCTION_SERVICE_KEY] = build_production_service(app.config)
