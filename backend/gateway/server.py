"""
API gateway: combines the user, event and business blueprints.
This is the entrypoint for development and for WSGI servers
(`backend.gateway.server:create_app()`).
"""

import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS

from backend.auth_service.routes import auth_bp
from backend.business_service.routes import business_bp
from backend.common.errors import register_error_handlers
from backend.events_service.routes import events_bp
from backend.users_service.routes import users_bp

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="[%(levelname)s] %(asctime)s - %(message)s",
)


def cors_origins():
    raw = os.getenv("CORS_ORIGINS", "*")
    if raw.strip() == "*":
        return "*"
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app() -> Flask:
    """
    Application factory for creating the Flask app.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    # Routes are declared with a trailing slash ("/"); accept both forms
    app.url_map.strict_slashes = False

    CORS(app, resources={
        r"/api/*": {
            "origins": cors_origins(),
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/api/user/auth")
    app.register_blueprint(users_bp, url_prefix="/api/user")
    app.register_blueprint(events_bp, url_prefix="/api/event")
    app.register_blueprint(business_bp, url_prefix="/api/business")
    register_error_handlers(app)
    logging.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("API_PORT", 3000))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG") == "1")
