# backend/rainbow_room/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.locations import locations_bp
    from .routes.items import items_bp
    from .routes.categories import categories_bp, sizes_bp
    from .routes.details import details_bp
    from .routes.checkouts import checkouts_bp
    from .routes.import_export import import_export_bp
    from .routes.reports import reports_bp
    from .routes.volunteers import volunteers_bp
    from .routes.identifiers import identifiers_bp
    from .routes.ledger import ledger_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(sizes_bp)
    app.register_blueprint(details_bp)
    app.register_blueprint(checkouts_bp)
    app.register_blueprint(import_export_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(volunteers_bp)
    app.register_blueprint(identifiers_bp)
    app.register_blueprint(ledger_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS", ()))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
