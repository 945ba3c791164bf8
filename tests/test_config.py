import importlib

import pytest

import csrfswagger.config as config


@pytest.fixture
def reload_config(monkeypatch):
    for name in ("API_ORIGIN", "SWAGGER_URL", "API_COOKIE", "CSRF_COOKIE_NAME", "SPEC_FETCH_TIMEOUT_SEC"):
        monkeypatch.delenv(name, raising=False)

    yield lambda: importlib.reload(config)

    monkeypatch.undo()
    importlib.reload(config)


def test_defaults(reload_config):
    cfg = reload_config()

    assert cfg.SPEC_URL == "http://localhost:8000/docs?format=openapi"
    assert cfg.CSRFTOKEN is None
    assert cfg.COOKIES == {}
    assert cfg.SPEC_FETCH_TIMEOUT_SEC is None


def test_env_overrides(monkeypatch, reload_config):
    monkeypatch.setenv("API_ORIGIN", "https://app.example.com/")
    monkeypatch.setenv("SWAGGER_URL", "/api/schema?format=json")
    monkeypatch.setenv("API_COOKIE", "sessionid=abc; csrftoken=t0k")
    monkeypatch.setenv("SPEC_FETCH_TIMEOUT_SEC", "2.5")

    cfg = reload_config()

    assert cfg.SPEC_URL == "https://app.example.com/api/schema?format=json"
    assert cfg.CSRFTOKEN == "t0k"
    assert cfg.COOKIES == {"sessionid": "abc", "csrftoken": "t0k"}
    assert cfg.SPEC_FETCH_TIMEOUT_SEC == 2.5


def test_custom_cookie_name(monkeypatch, reload_config):
    monkeypatch.setenv("API_COOKIE", "XSRF=abc; csrftoken=other")
    monkeypatch.setenv("CSRF_COOKIE_NAME", "XSRF")

    assert reload_config().CSRFTOKEN == "abc"
