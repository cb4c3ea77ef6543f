# backend/zenibo/__init__.py
import logging
import os

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    # Overrides must land before db.init_app: the engine is bound at init time
    if test_config:
        app.config.update(test_config)

    if not app.config.get("RECEIPT_STORAGE_DIR"):
        app.config["RECEIPT_STORAGE_DIR"] = os.path.join(app.instance_path, "receipts")

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.books import books_bp
    from .routes.transactions import transactions_bp
    from .routes.accounts import accounts_bp
    from .routes.receipts import receipts_bp
    from .routes.coupons import coupons_bp
    from .routes.integrations import stripe_bp, emails_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(books_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(accounts_bp)
    app.register_blueprint(receipts_bp)
    app.register_blueprint(coupons_bp)
    app.register_blueprint(stripe_bp)
    app.register_blueprint(emails_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or ())

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "Content-Disposition"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
