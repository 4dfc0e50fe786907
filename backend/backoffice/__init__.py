# backend/backoffice/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


# Record reads cached by the records API, keyed by the tables that invalidate them
CACHE_INVALIDATION = {
    "products": "products",
    "product_variants": "products",
    "orders": "orders",
    "order_items": "orders",
}


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Realtime change notifications and the read cache they invalidate
    from .services.change_feed import ChangeFeed, install_session_hooks
    from .services.request_cache import RequestCache

    install_session_hooks()
    feed = ChangeFeed()
    cache = RequestCache(ttl=app.config["REQUEST_CACHE_TTL_SECONDS"])
    cache.bind_to_feed(feed, CACHE_INVALIDATION)
    app.extensions["change_feed"] = feed
    app.extensions["request_cache"] = cache

    # Register blueprints
    from .routes.system import system_bp
    from .routes.financials import financials_bp
    from .routes.records import records_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(financials_bp)
    app.register_blueprint(records_bp)

    @app.after_request
    def add_cors_headers(response):
        # The financial calculator is called cross-origin by dashboards
        if request.path.startswith("/api/"):
            response.headers["Access-Control-Allow-Origin"] = app.config["CORS_ALLOW_ORIGIN"]
            response.headers["Access-Control-Allow-Headers"] = "authorization, x-client-info, apikey, content-type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    # app.logger is the "backoffice" logger, parent of every service module logger
    app.logger.setLevel(level)
