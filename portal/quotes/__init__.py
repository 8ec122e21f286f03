"""Expose the quotes blueprint grouping the pricing and quote endpoints.

The blueprint bundles the shipping calculator, quote issuance and quote
lifecycle routes so they can be registered with the main Flask application
under ``/api/quotes``.
"""

from flask import Blueprint

quotes_bp = Blueprint("quotes", __name__)

from . import routes  # noqa: F401,E402
