from __future__ import annotations

import logging
import os
from flask import Flask

from .extensions import csrf, db
from .views.api import api_bp
from .views.public import public_bp
from .views.santa import santa_bp

logger = logging.getLogger(__name__)

DEFAULT_MAIL_TIMEOUT = 10.0


def _mail_timeout(raw) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid MAIL_TIMEOUT %r; using %s seconds", raw, DEFAULT_MAIL_TIMEOUT)
        return DEFAULT_MAIL_TIMEOUT
    if value <= 0:
        logger.warning("Ignoring non-positive MAIL_TIMEOUT %r; using %s seconds", raw, DEFAULT_MAIL_TIMEOUT)
        return DEFAULT_MAIL_TIMEOUT
    return value


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    # Per-session organizer state; in-memory unless pointed elsewhere.
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///:memory:")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Maileroo (only needed for sending emails)
    app.config["MAILEROO_API_KEY"] = os.environ.get("MAILEROO_API_KEY", "")
    app.config["MAILEROO_API_URL"] = os.environ.get("MAILEROO_API_URL") or os.environ.get("MAILEROO_URL", "")
    app.config["MAILEROO_FROM"] = os.environ.get("MAILEROO_FROM", "")
    app.config["MAILEROO_FROM_ADDRESS"] = os.environ.get("MAILEROO_FROM_ADDRESS", "")
    app.config["MAILEROO_FROM_NAME"] = os.environ.get("MAILEROO_FROM_NAME", "")
    app.config["MAIL_TIMEOUT"] = os.environ.get("MAIL_TIMEOUT", str(DEFAULT_MAIL_TIMEOUT))

    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.config["MAIL_TIMEOUT"] = _mail_timeout(app.config["MAIL_TIMEOUT"])

    db.init_app(app)
    csrf.init_app(app)

    # Blueprints
    app.register_blueprint(public_bp)
    app.register_blueprint(santa_bp)
    app.register_blueprint(api_bp)
    csrf.exempt(api_bp)

    with app.app_context():
        db.create_all()

    @app.context_processor
    def inject_global_state():
        return {
            "mail_configured": bool(app.config["MAILEROO_API_KEY"] and app.config["MAILEROO_API_URL"]),
        }

    return app
