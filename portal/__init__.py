# portal/__init__.py
import logging
from typing import Union

from flask import Flask, jsonify
from flask.typing import ResponseReturnValue
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError

from freight.errors import (
    FreightError,
    NotFoundError,
    OutOfRangeError,
    TamperingError,
    ValidationError,
)

from .models import db

limiter = Limiter(key_func=get_remote_address)

ERROR_STATUS = (
    (TamperingError, 409),
    (NotFoundError, 404),
    (OutOfRangeError, 400),
    (ValidationError, 400),
)


def _status_for(error: FreightError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 400


def _register_error_handlers(app: Flask) -> None:
    """Render business and infrastructure errors as JSON envelopes."""

    @app.errorhandler(FreightError)
    def _freight_error(error: FreightError) -> ResponseReturnValue:
        status = _status_for(error)
        if isinstance(error, TamperingError):
            app.logger.error("Rejected quote request: %s", error.discrepancy)
        else:
            app.logger.info("Request failed (%s): %s", error.code, error.message)
        return jsonify({"error": error.to_dict()}), status

    @app.errorhandler(SQLAlchemyError)
    def _database_error(error: SQLAlchemyError) -> ResponseReturnValue:
        app.logger.exception("Database error while handling request")
        db.session.rollback()
        return (
            jsonify(
                {
                    "error": {
                        "code": "service_unavailable",
                        "message": "The service is temporarily unavailable. Please try again.",
                    }
                }
            ),
            503,
        )

    @app.errorhandler(404)
    def _not_found(_error: Exception) -> ResponseReturnValue:
        return jsonify({"error": {"code": "not_found", "message": "Not found"}}), 404

    @app.errorhandler(429)
    def _rate_limited(error: Exception) -> ResponseReturnValue:
        return (
            jsonify(
                {
                    "error": {
                        "code": "rate_limited",
                        "message": f"Too many requests: {getattr(error, 'description', '')}",
                    }
                }
            ),
            429,
        )


def _configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    app.logger.setLevel(level)


def create_app(config_class: Union[str, type] = "config.Config") -> Flask:
    """Application factory for the QCS rating and booking API.

    Args:
        config_class: Import path or class used to configure the app.

    Returns:
        A fully initialized :class:`~flask.Flask` application.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)
    _configure_logging(app)

    db.init_app(app)

    limiter.init_app(app)
    _register_error_handlers(app)

    # Blueprints
    from .bookings import bookings_bp
    from .quotes import quotes_bp

    app.register_blueprint(quotes_bp, url_prefix="/api/quotes")
    app.register_blueprint(bookings_bp, url_prefix="/api/bookings")

    @app.route("/healthz", methods=["GET"])
    @limiter.exempt
    def healthz() -> ResponseReturnValue:
        """Liveness probe for container orchestration."""
        return jsonify({"status": "ok"})

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Create database tables."""

        db.create_all()
        import click

        click.echo("Database initialized.")

    @app.cli.command("seed")
    def seed_command() -> None:
        """Load the default fleet, ZIP geocodes, schedule and holidays."""

        from .seed import seed_reference_data
        import click

        counts = seed_reference_data()
        click.echo(
            ", ".join(f"{table}: {count}" for table, count in counts.items())
        )

    @app.cli.command("expire-quotes")
    def expire_quotes_command() -> None:
        """Mark pending quotes past their expiry date as expired."""

        from services.quotes import expire_stale_quotes
        import click

        click.echo(f"Expired {expire_stale_quotes()} quotes.")

    return app


__all__ = ["create_app", "db", "limiter"]
