"""Application factory."""

import json
import os
import uuid

from flask import Flask, jsonify, g, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from mailers import build_mailer
from models import db
from routes.auth import auth_bp
from routes.badges import badges_bp
from routes.instructors import instructors_bp
from routes.reviews import reviews_bp
from routes.users import users_bp
from routes.workshops import workshops_bp

migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    app.extensions["mailer"] = build_mailer(app.config)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting
    storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    headers_enabled = app.config.get("RATELIMIT_HEADERS_ENABLED", True)
    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())

    global limiter
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[lambda: app.config.get("RATE_LIMIT", "60 per minute")],
        storage_uri=storage_uri,
        headers_enabled=headers_enabled,
        key_prefix=key_prefix,
    )
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(workshops_bp, url_prefix="/workshops")
    app.register_blueprint(reviews_bp, url_prefix="/reviews")
    app.register_blueprint(instructors_bp, url_prefix="/instructors")
    app.register_blueprint(badges_bp, url_prefix="/badges")

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)
    _register_jwt_handlers()

    return app


def _error_payload(error: str, detail: str, status_code: int, code: str | None = None):
    request_id = g.get("request_id") or str(uuid.uuid4())
    payload = {"error": error, "detail": detail, "request_id": request_id}
    if code:
        payload["code"] = code
    response = jsonify(payload)
    response.status_code = status_code
    response.headers.setdefault("X-Request-ID", request_id)
    return response


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        error_code = getattr(error, "error_code", None)
        if error_code:
            payload["code"] = error_code
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        db.session.rollback()
        app.logger.exception("Unhandled application error", exc_info=error)
        return _error_payload(
            "Internal Server Error",
            "An unexpected error occurred.",
            500,
        )


def _register_jwt_handlers() -> None:
    """Render flask-jwt-extended failures in the application's error shape."""

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return _error_payload("Unauthorized", reason, 401, "missing_token")

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return _error_payload("Unauthorized", reason, 401, "invalid_session")

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return _error_payload("Unauthorized", "Token has expired.", 401, "invalid_session")


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
