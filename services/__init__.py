"""Database-backed lookups and quote persistence for the QCS portal."""

from __future__ import annotations

from importlib import import_module
from types import ModuleType
from typing import Final

__all__: Final[list[str]] = [
    "business_hours",
    "destinations",
    "fleet",
    "geocode",
    "quotes",
]


def __getattr__(name: str) -> ModuleType:
    """Lazily import service modules on first attribute access.

    Keeps ``import services`` free of the Flask-SQLAlchemy models until a
    lookup is actually needed.

    Args:
        name: Attribute requested from the package.

    Returns:
        ModuleType: The matching submodule.

    Raises:
        AttributeError: If an unknown attribute is requested.
    """

    if name in __all__:
        return import_module(f"{__name__}.{name}")
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
