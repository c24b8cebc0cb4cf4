from flask import Flask, jsonify

from ledgerstore.config import configure_logging
from ledgerstore.datasource import LedgerDatasource
from ledgerstore.errors import (
    ConfigurationError,
    EmptyPredicateError,
    MissingIdError,
    UpsertConflictError,
)


def create_app(datasource: LedgerDatasource = None) -> Flask:
    """Application factory."""
    configure_logging()
    app = Flask(__name__)

    app.datasource = datasource or LedgerDatasource()

    # Register blueprints
    from ledgerstore.routes.documents import bp as documents_bp

    app.register_blueprint(documents_bp, url_prefix="/api/tables/<table>/documents")

    @app.route("/api/health")
    def health():
        return {"status": "ok"}

    @app.errorhandler(UpsertConflictError)
    def upsert_conflict(error):
        return jsonify({"error": str(error), "count": error.count}), 409

    @app.errorhandler(EmptyPredicateError)
    @app.errorhandler(ConfigurationError)
    @app.errorhandler(ValueError)
    def bad_request(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(MissingIdError)
    def missing_id(error):
        return jsonify({"error": str(error)}), 502

    return app
