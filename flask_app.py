"""WSGI entry point for the QCS rating and booking API.

``flask --app flask_app <command>`` picks up :data:`app` for the CLI
commands; running the module directly starts the development server on the
address given by ``HOST`` and ``PORT``.
"""

from __future__ import annotations

import os
from typing import Dict, Tuple

from portal import create_app

DEBUG_VALUES: Dict[str, bool] = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000


def resolve_debug_flag(env_var: str = "FLASK_DEBUG") -> bool:
    """Return ``True`` only when ``env_var`` explicitly enables debugging."""

    raw_value = (os.getenv(env_var) or "").strip().lower()
    return DEBUG_VALUES.get(raw_value, False)


def resolve_bind_address() -> Tuple[str, int]:
    """Return the ``(host, port)`` pair for the development server.

    An unparseable or out-of-range ``PORT`` falls back to
    :data:`DEFAULT_PORT`.
    """

    host = (os.getenv("HOST") or DEFAULT_HOST).strip()
    try:
        port = int(os.getenv("PORT", DEFAULT_PORT))
    except ValueError:
        return host, DEFAULT_PORT
    if not 0 < port < 65536:
        return host, DEFAULT_PORT
    return host, port


app = create_app()
app.config["DEBUG"] = resolve_debug_flag()


if __name__ == "__main__":
    bind_host, bind_port = resolve_bind_address()
    app.run(debug=app.debug, host=bind_host, port=bind_port)
