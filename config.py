"""Central configuration for the QCS Cargo rating and booking service.

The module resolves the application's base directory, ensures the default
SQLite instance folder exists, and exposes the :class:`Config` settings class.

Key settings exposed by :class:`Config`:

* ``SECRET_KEY``: Signs Flask sessions. Generated at startup when the
  ``SECRET_KEY`` environment variable is missing.
* ``SQLALCHEMY_DATABASE_URI`` and ``SQLALCHEMY_ENGINE_OPTIONS``: Provide the
  SQLAlchemy connection string and optional connection pooling behaviour.
* ``RATELIMIT_*``, ``QUOTE_RATE_LIMIT`` and ``AVAILABILITY_RATE_LIMIT``:
  Configure global and endpoint rate limiting enforced by :mod:`flask_limiter`.
* Origin facility, service radius, booking horizon and pricing constants used
  to build :class:`freight.settings.RatingSettings` and
  :class:`freight.settings.AvailabilitySettings`.

All values default to development-friendly settings and can be overridden via
environment variables.
"""

# config.py
import logging
import os
from pathlib import Path
from secrets import token_urlsafe
from typing import Any, Iterable, Mapping, Optional, Set, Tuple
from urllib.parse import parse_qsl, quote_plus, urlencode

from freight.settings import (
    DEFAULT_AVAILABILITY_SETTINGS,
    DEFAULT_RATING_SETTINGS,
    AvailabilitySettings,
    RatingSettings,
)

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_DB_PATH = BASE_DIR / "instance" / "qcs.db"
# Ensure the default database directory exists so all tools share the same DB.
DEFAULT_DB_PATH.parent.mkdir(parents=True, exist_ok=True)

logger = logging.getLogger("qcs.config")


def _resolve_secret_key() -> str:
    """Return a cryptographically strong secret key for Flask sessions."""

    configured = os.getenv("SECRET_KEY")
    if configured:
        return configured

    generated = token_urlsafe(32)
    logger.warning(
        "SECRET_KEY environment variable is not set; generated a one-time key."
    )
    return generated


def _parse_postgres_options(raw_options: str) -> Iterable[Tuple[str, str]]:
    """Return key/value pairs parsed from ``POSTGRES_OPTIONS``.

    ``POSTGRES_OPTIONS`` accepts a query-string-style value such as
    ``"sslmode=require&application_name=qcs"``.
    """

    return parse_qsl(raw_options, keep_blank_values=True)


def build_postgres_database_uri_from_env(
    *, driver: str = "postgresql+psycopg2"
) -> Optional[str]:
    """Assemble a PostgreSQL SQLAlchemy URI from Compose-style variables.

    Reads ``POSTGRES_USER``, ``POSTGRES_PASSWORD``, ``POSTGRES_DB``,
    ``POSTGRES_HOST``, ``POSTGRES_PORT`` and optional ``POSTGRES_OPTIONS``.
    Returns ``None`` when ``POSTGRES_PASSWORD`` is unset so callers can fall
    back to the SQLite default.

    Args:
        driver: SQLAlchemy driver prefix used when constructing the URI.

    Returns:
        Optional[str]: Connection string, or ``None`` when incomplete.
    """

    password = os.getenv("POSTGRES_PASSWORD")
    if not password:
        return None

    user = os.getenv("POSTGRES_USER", "qcs")
    db_name = os.getenv("POSTGRES_DB", "qcs")
    host = os.getenv("POSTGRES_HOST", "postgres")
    port = os.getenv("POSTGRES_PORT", "5432")
    options = os.getenv("POSTGRES_OPTIONS", "")
    query = f"?{urlencode(list(_parse_postgres_options(options)))}" if options else ""
    return (
        f"{driver}://{quote_plus(user)}:{quote_plus(password)}@{host}:{port}/"
        f"{quote_plus(db_name)}{query}"
    )


def _read_compose_profiles() -> Set[str]:
    """Return active Docker Compose profiles from ``COMPOSE_PROFILES``."""

    raw_profiles = os.getenv("COMPOSE_PROFILES", "")
    return {profile.strip() for profile in raw_profiles.split(",") if profile.strip()}


def _resolve_ratelimit_storage_uri() -> str:
    """Determine where :mod:`flask_limiter` persists rate-limit counters.

    ``RATELIMIT_STORAGE_URI`` wins. With the Compose ``cache`` profile active
    counters go to the bundled Redis service; otherwise they stay in process
    memory.
    """

    configured = os.getenv("RATELIMIT_STORAGE_URI")
    if configured:
        return configured

    if "cache" in _read_compose_profiles():
        return "redis://redis:6379/1"

    return "memory://"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"true", "1", "yes", "y"}


def _env_float(name: str, default: float) -> float:
    """Return ``name`` parsed as a float, logging and falling back when invalid."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


class Config:
    SECRET_KEY = _resolve_secret_key()
    SQLALCHEMY_DATABASE_URI = (
        os.getenv("DATABASE_URL")
        or build_postgres_database_uri_from_env()
        or f"sqlite:///{DEFAULT_DB_PATH}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DB_POOL_SIZE = os.getenv("DB_POOL_SIZE")
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    if DB_POOL_SIZE:
        SQLALCHEMY_ENGINE_OPTIONS["pool_size"] = int(DB_POOL_SIZE)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per day;50 per hour")
    RATELIMIT_STORAGE_URI = _resolve_ratelimit_storage_uri()
    RATELIMIT_HEADERS_ENABLED = _env_bool("RATELIMIT_HEADERS_ENABLED", True)
    QUOTE_RATE_LIMIT = os.getenv("QUOTE_RATE_LIMIT", "30 per minute")
    AVAILABILITY_RATE_LIMIT = os.getenv("AVAILABILITY_RATE_LIMIT", "60 per minute")

    # Pricing
    DIM_DIVISOR = _env_float("DIM_DIVISOR", DEFAULT_RATING_SETTINGS.dim_divisor)
    HANDLING_FEE = _env_float("HANDLING_FEE", DEFAULT_RATING_SETTINGS.handling_fee)
    HANDLING_THRESHOLD_LBS = _env_float(
        "HANDLING_THRESHOLD_LBS", DEFAULT_RATING_SETTINGS.handling_threshold_lbs
    )
    INSURANCE_FLOOR = _env_float("INSURANCE_FLOOR", DEFAULT_RATING_SETTINGS.insurance_floor)
    INSURANCE_RATE_PER_100 = _env_float(
        "INSURANCE_RATE_PER_100", DEFAULT_RATING_SETTINGS.insurance_rate_per_100
    )
    INSURANCE_MINIMUM = _env_float(
        "INSURANCE_MINIMUM", DEFAULT_RATING_SETTINGS.insurance_minimum
    )
    QUOTE_VALIDITY_DAYS = _env_int(
        "QUOTE_VALIDITY_DAYS", DEFAULT_RATING_SETTINGS.quote_validity_days
    )
    QUOTE_FOLLOW_UP_DAYS = _env_int(
        "QUOTE_FOLLOW_UP_DAYS", DEFAULT_RATING_SETTINGS.quote_follow_up_days
    )

    # Scheduling
    ORIGIN_LATITUDE = _env_float(
        "ORIGIN_LATITUDE", DEFAULT_AVAILABILITY_SETTINGS.origin_latitude
    )
    ORIGIN_LONGITUDE = _env_float(
        "ORIGIN_LONGITUDE", DEFAULT_AVAILABILITY_SETTINGS.origin_longitude
    )
    SERVICE_RADIUS_MILES = _env_float(
        "SERVICE_RADIUS_MILES", DEFAULT_AVAILABILITY_SETTINGS.service_radius_miles
    )
    TRAVEL_MINUTES_PER_MILE = _env_float(
        "TRAVEL_MINUTES_PER_MILE", DEFAULT_AVAILABILITY_SETTINGS.travel_minutes_per_mile
    )
    BOOKING_HORIZON_DAYS = _env_int(
        "BOOKING_HORIZON_DAYS", DEFAULT_AVAILABILITY_SETTINGS.booking_horizon_days
    )
    FACILITY_TIMEZONE = os.getenv("FACILITY_TIMEZONE", DEFAULT_AVAILABILITY_SETTINGS.timezone)


def rating_settings_from_config(config: Mapping[str, Any]) -> RatingSettings:
    """Build :class:`RatingSettings` from a Flask config mapping.

    Keys missing from ``config`` keep their library defaults.
    """

    base = DEFAULT_RATING_SETTINGS
    return RatingSettings(
        dim_divisor=float(config.get("DIM_DIVISOR", base.dim_divisor)),
        tier1_max_lbs=base.tier1_max_lbs,
        tier2_max_lbs=base.tier2_max_lbs,
        tier3_max_lbs=base.tier3_max_lbs,
        handling_threshold_lbs=float(
            config.get("HANDLING_THRESHOLD_LBS", base.handling_threshold_lbs)
        ),
        handling_fee=float(config.get("HANDLING_FEE", base.handling_fee)),
        insurance_floor=float(config.get("INSURANCE_FLOOR", base.insurance_floor)),
        insurance_rate_per_100=float(
            config.get("INSURANCE_RATE_PER_100", base.insurance_rate_per_100)
        ),
        insurance_minimum=float(config.get("INSURANCE_MINIMUM", base.insurance_minimum)),
        quote_validity_days=int(config.get("QUOTE_VALIDITY_DAYS", base.quote_validity_days)),
        quote_follow_up_days=int(
            config.get("QUOTE_FOLLOW_UP_DAYS", base.quote_follow_up_days)
        ),
    )


def availability_settings_from_config(config: Mapping[str, Any]) -> AvailabilitySettings:
    """Build :class:`AvailabilitySettings` from a Flask config mapping."""

    base = DEFAULT_AVAILABILITY_SETTINGS
    return AvailabilitySettings(
        origin_latitude=float(config.get("ORIGIN_LATITUDE", base.origin_latitude)),
        origin_longitude=float(config.get("ORIGIN_LONGITUDE", base.origin_longitude)),
        origin_label=base.origin_label,
        service_radius_miles=float(
            config.get("SERVICE_RADIUS_MILES", base.service_radius_miles)
        ),
        travel_minutes_per_mile=float(
            config.get("TRAVEL_MINUTES_PER_MILE", base.travel_minutes_per_mile)
        ),
        booking_horizon_days=int(
            config.get("BOOKING_HORIZON_DAYS", base.booking_horizon_days)
        ),
        window_hours=base.window_hours,
        window_step_hours=base.window_step_hours,
        timezone=str(config.get("FACILITY_TIMEZONE", base.timezone)),
    )
