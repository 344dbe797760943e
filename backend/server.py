"""
Flask application entry point for the health vault backend.

Registers the vault API (registry, records, permissions, emergency policy,
audit log) on a single app with per-request session cleanup.
"""

import logging

from flask import Flask

from healthvault.config import config
from healthvault.api.vault import bp as vault_bp
from healthvault.db.session import close_db_session


def create_app(init_database: bool = False):
    """Create and configure Flask app."""
    app = Flask(__name__)

    # Load config
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["DEBUG"] = config.DEBUG

    # Clean up database session at the end of each request
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        close_db_session(exception)

    app.register_blueprint(vault_bp)  # /api/v1/vault/*

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    # Initialize database tables if requested (development only)
    if init_database:
        with app.app_context():
            from healthvault.db.session import init_db
            init_db()
            app.logger.info("Database tables initialized")

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG if config.DEBUG else logging.INFO)
    app = create_app(init_database=False)
    print(f"[HealthVault] Starting server on port 5001...")
    print(f"[HealthVault] Debug mode: {config.DEBUG}")
    print(f"[HealthVault] Admin identities: {len(config.ADMIN_IDENTITIES)}")
    print(f"[HealthVault] Routes:")
    print(f"  - /api/v1/vault/* (Vault API)")
    print(f"  - /health (Health check)")
    app.run(debug=config.DEBUG, port=5001)
