"""
GearGuard — Maintenance Tracking Service
Flask Application Factory.

Usage:
    from gearguard import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from gearguard.config import config
from gearguard.middleware.jwt_auth import init_jwt_middleware
from gearguard.middleware.logging_config import configure_logging
from gearguard.middleware.timing import init_request_timing
from gearguard.models import db

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + JWT auth ────────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from gearguard.models import equipment as _equipment_models      # noqa: F401
    from gearguard.models import maintenance as _maintenance_models  # noqa: F401
    from gearguard.models import team as _team_models                # noqa: F401
    from gearguard.models import user as _user_models                # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in \
            app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        db.create_all()
        app.logger.debug("db.create_all() completed")

    # ── Blueprints ───────────────────────────────────────────────────────
    from gearguard.blueprints import register_error_handlers
    from gearguard.blueprints.equipment_bp import equipment_bp
    from gearguard.blueprints.request_bp import request_bp
    from gearguard.blueprints.team_bp import team_bp
    from gearguard.blueprints.user_bp import user_bp

    app.register_blueprint(request_bp)
    app.register_blueprint(equipment_bp)
    app.register_blueprint(team_bp)
    app.register_blueprint(user_bp)
    register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Seed demo teams, users, equipment and maintenance requests."""
        from gearguard.services.seed_service import seed_demo_data
        from gearguard.services.store import SqlAlchemyStore

        created = seed_demo_data(SqlAlchemyStore(db.session))
        logger.info("Seeded %s. Password hashes are stored for the external login service.", created)

    # ── Health check ─────────────────────────────────────────────────────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "GearGuard"}

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    return app
