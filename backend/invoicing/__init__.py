# backend/invoicing/__init__.py
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import InvoicingError
from .extensions import db, migrate


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app binds the engine
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.invoices import invoices_bp
    from .routes.branches import branches_bp
    from .routes.workers import workers_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(branches_bp)
    app.register_blueprint(workers_bp)

    from .services.notification_service import init_notifications
    init_notifications(app)

    @app.errorhandler(InvoicingError)
    def handle_invoicing_error(exc):
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({
            "success": False,
            "error": exc.name.replace(" ", ""),
            "message": exc.description,
        }), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify({
            "success": False,
            "error": "InternalError",
            "message": "Internal server error",
        }), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
