"""Application factory for the directortax backend services."""

import os
from warnings import warn

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import BadRequest

from .http import EXTENSION_KEY, problem_response
from .routes import register_routes
from .routes.config import get_configuration_metadata
from .services.repository import CalculationStores, build_repositories


def _parse_allowed_origins(raw: str | None) -> set[str]:
    """Convert an environment variable into a normalised set of origins."""

    if not raw:
        return set()

    return {origin.strip() for origin in raw.split(",") if origin.strip()}


def create_app(stores: CalculationStores | None = None) -> Flask:
    """Create and configure the Flask application instance.

    ``stores`` replaces the default in-memory repositories, which is how a
    deployment plugs in durable persistence.
    """

    app = Flask(__name__)
    app.extensions[EXTENSION_KEY] = stores or build_repositories()

    allowed_origins = _parse_allowed_origins(os.getenv("DIRECTORTAX_ALLOWED_ORIGINS"))
    if not allowed_origins:
        warn(
            "No allowed origins configured; cross-origin requests will be rejected.",
            stacklevel=1,
        )

    CORS(
        app,
        resources={r"/api/*": {"origins": sorted(allowed_origins)}},
        supports_credentials=False,
        methods=["GET", "OPTIONS", "POST"],
        allow_headers=["Content-Type", "X-Client-Id"],
    )

    register_routes(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Simple health check endpoint for infrastructure monitoring."""

        payload = {"status": "ok", **get_configuration_metadata()}
        return jsonify(payload)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response("bad_request", status=400, message=message).to_response()

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        """Surface input validation failures to clients."""

        return problem_response(
            "validation_error", status=400, message=str(error)
        ).to_response()

    return app
