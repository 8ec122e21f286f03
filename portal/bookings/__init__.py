"""Expose the bookings blueprint serving pickup and drop-off availability."""

from flask import Blueprint

bookings_bp = Blueprint("bookings", __name__)

from . import routes  # noqa: F401,E402
