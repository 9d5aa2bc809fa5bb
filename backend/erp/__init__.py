# backend/erp/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Collaborators; tests may replace these entries
    from .services.config_store import StaticConfigStore
    from .services.permission_service import RolePermissionChecker
    from .services.session_service import SessionTokenIdentityProvider

    app.extensions["erp.config_store"] = StaticConfigStore.from_app_config(app.config)
    app.extensions["erp.identity_provider"] = SessionTokenIdentityProvider()
    app.extensions["erp.permission_checker"] = RolePermissionChecker()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sales import sales_bp
    from .routes.inventory import inventory_bp
    from .routes.goods_receipts import goods_receipts_bp
    from .routes.direct_purchases import direct_purchases_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.product_lots import product_lots_bp
    from .routes.product_serials import product_serials_bp
    from .routes.document_sequences import document_sequences_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(goods_receipts_bp)
    app.register_blueprint(direct_purchases_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(product_lots_bp)
    app.register_blueprint(product_serials_bp)
    app.register_blueprint(document_sequences_bp)

    allowed_origins = set(app.config.get("CORS_ORIGINS") or ())

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
