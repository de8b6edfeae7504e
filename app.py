import os
from datetime import timedelta
from typing import Any, Optional

from flask import Flask, jsonify

from extensions import db
from scavenger import create_scavenger_blueprint


# ====== Feature toggles ======
def _env_flag(name: str, default: bool) -> bool:
    """Parse truthy feature-toggle values from the environment."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        print(f"⚠️ Invalid {name} value: {raw!r}. Using default {default}.")
        return default


def _normalize_database_url(url: str) -> str:
    # Heroku-style URLs use postgres:// but SQLAlchemy expects postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


ENABLE_CLAIMS_API = _env_flag("ENABLE_CLAIMS_API", True)  # 🎯 Player claim endpoint

# ====== Rate limit settings ======
CLAIM_RATE_LIMIT_WINDOW_MINUTES = _env_int("CLAIM_RATE_LIMIT_WINDOW_MINUTES", 15, minimum=1)
CLAIM_RATE_LIMIT_MAX_FAILED = _env_int("CLAIM_RATE_LIMIT_MAX_FAILED", 10, minimum=1)
CLAIM_ATTEMPTS_DEFAULT_LIMIT = _env_int("CLAIM_ATTEMPTS_DEFAULT_LIMIT", 100, minimum=1)


def create_app(config_override: Optional[dict[str, Any]] = None) -> Flask:
    """Build the Flask app; ``config_override`` wins over environment settings."""
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY") or os.urandom(24)
    app.permanent_session_lifetime = timedelta(days=30)

    database_url = os.environ.get("DATABASE_URL", "sqlite:///scavenger.db")
    app.config["SQLALCHEMY_DATABASE_URI"] = _normalize_database_url(database_url)
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config.setdefault("ENABLE_CLAIMS_API", ENABLE_CLAIMS_API)
    app.config.setdefault("CLAIM_RATE_LIMIT_WINDOW_MINUTES", CLAIM_RATE_LIMIT_WINDOW_MINUTES)
    app.config.setdefault("CLAIM_RATE_LIMIT_MAX_FAILED", CLAIM_RATE_LIMIT_MAX_FAILED)
    app.config.setdefault("CLAIM_ATTEMPTS_DEFAULT_LIMIT", CLAIM_ATTEMPTS_DEFAULT_LIMIT)

    if config_override:
        app.config.update(config_override)

    db.init_app(app)
    app.register_blueprint(create_scavenger_blueprint())

    @app.errorhandler(404)
    @app.errorhandler(405)
    def show_json_error(err):
        status_code = getattr(err, "code", 404) or 404
        message = "Not found" if status_code == 404 else "Method not allowed"
        return jsonify({"success": False, "error": message}), status_code

    @app.errorhandler(500)
    def show_internal_error(err):
        app.logger.error("Unhandled error: %s", err)
        return jsonify({"success": False, "error": "Internal server error"}), 500

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(debug=_env_flag("FLASK_DEBUG", False))
