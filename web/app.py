"""Flask web app serving the product catalog API.

Run locally with ``python -m web.app`` or ``flask --app web.app:create_app run``.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException

# Load environment variables from .env file before reading config
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from catalog.db import init_db  # noqa: E402
from catalog.logging_config import log_event, setup_logging  # noqa: E402
from web import config  # noqa: E402
from web.error_logging import init_error_logging_db  # noqa: E402
from web.routes import build_blueprint, mounted_routes  # noqa: E402

__all__ = ["create_app"]

logger = logging.getLogger(__name__)


def _default_config() -> dict:
    return {
        "DB_PATH": config.DB_PATH,
        "URL_PREFIX": config.URL_PREFIX,
        "MOUNT_OPTIONAL_ROUTES": config.MOUNT_OPTIONAL_ROUTES,
        "API_TOKENS": config.parse_api_tokens(config.API_TOKENS),
        "LOG_LEVEL": config.LOG_LEVEL,
        "LOG_DIR": config.LOG_DIR,
        "LOG_TO_FILE": config.LOG_TO_FILE,
    }


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create the Flask app.

    Args:
        overrides: Config values replacing the environment-derived defaults
            (e.g. ``{"DB_PATH": ..., "MOUNT_OPTIONAL_ROUTES": True}``).
    """
    app = Flask(__name__)
    app.config.update(_default_config())
    if overrides:
        app.config.update(overrides)
    if isinstance(app.config["API_TOKENS"], str):
        app.config["API_TOKENS"] = config.parse_api_tokens(app.config["API_TOKENS"])
    app.json.sort_keys = False

    setup_logging(
        level=getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO),
        log_to_file=app.config["LOG_TO_FILE"],
        log_dir=Path(app.config["LOG_DIR"]),
    )

    init_db(app.config["DB_PATH"])
    app.extensions["error_logger"] = init_error_logging_db(app.config["DB_PATH"])

    mount_optional = bool(app.config["MOUNT_OPTIONAL_ROUTES"])
    app.register_blueprint(
        build_blueprint(url_prefix=app.config["URL_PREFIX"], mount_optional=mount_optional)
    )
    for route in mounted_routes(mount_optional):
        logger.debug(f"Mounted {route.describe()}")
    if not app.config["API_TOKENS"]:
        logger.warning("API_TOKENS not set; protected routes accept unauthenticated requests")

    # ---------- REQUEST LOGGING ----------

    @app.before_request
    def _start_request() -> None:
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response: Response) -> Response:
        duration_ms = (time.perf_counter() - g.get("start_time", time.perf_counter())) * 1000
        response.headers["X-Request-ID"] = g.get("request_id", "")
        log_event(
            "request",
            {
                "message": f"{request.method} {request.path} -> {response.status_code}",
                "request_id": g.get("request_id"),
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
            logger_name="web.app",
        )
        return response

    # ---------- ERROR HANDLERS ----------

    @app.errorhandler(HTTPException)
    def _http_error(error: HTTPException):
        return jsonify({"success": False, "data": error.description}), error.code

    @app.errorhandler(Exception)
    def _unhandled_error(error: Exception):
        logger.exception("Unhandled error")
        return jsonify({"success": False, "data": "Internal server error"}), 500

    return app


if __name__ == "__main__":
    create_app().run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=config.FLASK_DEBUG)
