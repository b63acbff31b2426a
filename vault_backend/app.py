"""
FLASK APP ENTRY POINT - OTP VAULT BACKEND
=========================================

Builds the Flask app serving the credential API: configuration, CORS,
database bootstrap and the /api blueprint.

Run locally:
    python -m vault_backend.app
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from vault_core.errors import CredentialError
from vault_database import setup_database

from .config import Config

logger = logging.getLogger(__name__)


def create_app(overrides=None) -> Flask:
    """
    Application factory.

    Arguments:
        overrides: mapping applied on top of Config (tests pass DATABASE
            pointing at a temporary file)
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # Let the web client (served from another origin) call the API
    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    setup_database(app.config["DATABASE"])

    from .routes import api_bp

    app.register_blueprint(api_bp)
    _register_error_handlers(app)

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({"service": "otp-vault", "api": "/api"})

    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CredentialError)
    def handle_credential_error(e):
        logger.info("Rejected request: %s", e)
        return jsonify({"error": str(e), "kind": type(e).__name__}), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found"}), 404


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True, host="0.0.0.0", port=5000)
