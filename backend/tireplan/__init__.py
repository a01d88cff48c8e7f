# backend/tireplan/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.auth import auth_bp
    from .routes.admin import admin_bp  # Super-admin console
    from .routes.stores import stores_bp
    from .routes.products import products_bp
    from .routes.inventory import inventory_bp  # Stock-in and transfers
    from .routes.sales import sales_bp
    from .routes.customers import customers_bp
    from .routes.invoices import invoices_bp
    from .routes.reservations import reservations_bp
    from .routes.staff import staff_bp
    from .routes.expenses import expenses_bp
    from .routes.leave import leave_bp
    from .routes.reports import reports_bp  # Dashboard figures

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(stores_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(reservations_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(leave_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    if app.config.get("SEED_DEMO_DATA"):
        from .services.seed_service import seed_demo
        with app.app_context():
            db.create_all()
            if seed_demo():
                db.session.commit()
                app.logger.info("Demo data loaded")

    return app
