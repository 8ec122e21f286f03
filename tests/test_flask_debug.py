import pytest

import flask_app


@pytest.mark.parametrize(
    "value,expected",
    [(None, False), ("1", True), (" On ", True), ("false", False), ("maybe", False)],
)
def test_resolve_debug_flag(monkeypatch, value, expected):
    if value is None:
        monkeypatch.delenv("FLASK_DEBUG", raising=False)
    else:
        monkeypatch.setenv("FLASK_DEBUG", value)

    assert flask_app.resolve_debug_flag() is expected


def test_bind_address_defaults_to_loopback(monkeypatch):
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.delenv("PORT", raising=False)

    assert flask_app.resolve_bind_address() == ("127.0.0.1", 5000)


def test_bind_address_reads_environment(monkeypatch):
    monkeypatch.setenv("HOST", "0.0.0.0")
    monkeypatch.setenv("PORT", "8080")

    assert flask_app.resolve_bind_address() == ("0.0.0.0", 8080)


@pytest.mark.parametrize("port", ["http", "0", "70000"])
def test_bind_address_rejects_bad_ports(monkeypatch, port):
    monkeypatch.setenv("PORT", port)

    assert flask_app.resolve_bind_address()[1] == 5000
