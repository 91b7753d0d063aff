"""
EduSmart Tracker, a local Flask application

Single-user student performance tracker: students, subjects and scores kept
in one local storage slot, dashboard statistics, AI-written reports with
multi-model fallback, and spreadsheet / slide / Word exports.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Flask, Response, jsonify

from ai_resilience import AllModelsFailedError, ConfigurationError
from blueprints import register_blueprints
from export import ExportFailure
from gradebook import Gradebook
from logging_config import init_logging
from models import ValidationError
from storage import DatasetStore, SlotStorage

logger = logging.getLogger(__name__)


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    from config import config_by_name
    if test_config is not None:
        app.config.from_object(config_by_name["testing"])
        app.config.update(test_config)
    else:
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.json.ensure_ascii = False

    # Structured logging
    init_logging(app)

    # The one Dataset owner for this process
    store = DatasetStore(
        SlotStorage(app.config["DATA_DIR"]),
        key=app.config["STORAGE_KEY"],
        default_api_key=app.config.get("GOOGLE_API_KEY", ""),
    )
    app.extensions["gradebook"] = Gradebook(store)

    register_blueprints(app)
    register_error_handlers(app)

    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "same-origin"
        return response

    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(ConfigurationError)
    def handle_configuration_error(exc: ConfigurationError):
        return jsonify({"error": str(exc), "code": "missing_api_key"}), 400

    @app.errorhandler(AllModelsFailedError)
    def handle_all_models_failed(exc: AllModelsFailedError):
        logger.warning("AI request failed on every model (%d attempts)", len(exc.failures),
                       extra={"failures": len(exc.failures)})
        return jsonify({
            "error": str(exc),
            "failures": [f.to_dict() for f in exc.failures],
        }), 502

    @app.errorhandler(ExportFailure)
    def handle_export_failure(exc: ExportFailure):
        return jsonify({"error": str(exc)}), 400


if __name__ == "__main__":
    application = create_app()
    application.run(host=application.config["HOST"], port=application.config["PORT"])
