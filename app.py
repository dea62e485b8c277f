# backend/app.py
from __future__ import annotations

import logging
import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_cors import CORS
from sqlalchemy import event

from config import Config
from db import db, migrate
from errors import ApiError

# Ensure models are imported so Flask-Migrate sees them
from models.user import User
from models.password_reset_otp import PasswordResetOtp
from models.post import Post, PostLike
from models.epaper import EPaper

# Blueprints
from routes.auth import auth_bp
from routes.posts import posts_bp
from routes.epapers import epapers_bp
from routes.reporters import reporters_bp

from services.storage import init_blob_store


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)

    # Respect reverse proxy headers (scheme / host) for correct URL generation
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[arg-type]

    # Load config + init extensions
    app.config.from_object(config_object)
    logging.basicConfig(
        level=getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s: %(message)s",
    )

    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})
    db.init_app(app)
    migrate.init_app(app, db)
    init_blob_store(app)

    with app.app_context():
        # Store and compare every timestamp in UTC
        if db.engine.dialect.name == "mysql":
            @event.listens_for(db.engine, "connect")
            def _set_utc_timezone(dbapi_conn, _):
                cur = dbapi_conn.cursor()
                try:
                    cur.execute("SET time_zone = '+00:00'")
                finally:
                    cur.close()

        # Touch models so Alembic/Flask-Migrate registers them
        _ = (User, PasswordResetOtp, Post, PostLike, EPaper)

    # Health check
    @app.route("/")
    def health_check():
        return jsonify(status="ok", name=app.config.get("APP_NAME")), 200

    @app.errorhandler(404)
    def handle_404(e):
        if isinstance(e, ApiError):
            return jsonify(e.to_dict()), e.code
        return jsonify(error="Not Found", path=request.path), 404

    # Global error handler
    @app.errorhandler(Exception)
    def handle_any_error(e: Exception):
        if isinstance(e, ApiError):
            db.session.rollback()
            return jsonify(e.to_dict()), e.code
        if isinstance(e, HTTPException):
            return jsonify(error=e.description), e.code
        app.logger.exception("[app] unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return jsonify(error="Internal server error"), 500

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(posts_bp)
    app.register_blueprint(epapers_bp)
    app.register_blueprint(reporters_bp)

    # CLI: drop expired and used password-reset codes
    @app.cli.command("purge-otps")
    def purge_otps_cmd():
        from services.auth import purge_reset_codes
        n = purge_reset_codes()
        print(f"Purged {n} reset codes.")

    # CLI: create or refresh the admin account from ADMIN_* env vars
    @app.cli.command("seed-admin")
    def seed_admin_cmd():
        from seed import seed_admin
        seed_admin()

    return app


# Optional local entrypoint (useful for quick dev runs)
if __name__ == "__main__":
    app = create_app()
    app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
        debug=bool(os.environ.get("FLASK_DEBUG", "")),
    )
