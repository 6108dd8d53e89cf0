"""Endpoint file loading and secret references."""

import json
from pathlib import Path

import pytest

from core.config import AppSettings, load_endpoint_config, resolve_secret
from core.errors import ConfigurationError

ENDPOINT = {
    "entity": {
        "tenant-a": {
            "baseUrls": ["https://a.example.test/API", "https://b.example.test/API"],
            "tenantCode": "TC-123",
            "username": "api",
            "password": "env:AWB_TEST_SECRET",
            "proxy": {"host": "http://proxy.local:3128"},
        }
    }
}


def write(tmp_path, data) -> Path:
    path = tmp_path / "airwatch-bridge.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return path


@pytest.mark.parametrize("wrapped", [True, False])
def test_load_endpoint_config(tmp_path, wrapped):
    path = write(tmp_path, {"endpoint": ENDPOINT} if wrapped else ENDPOINT)

    config = load_endpoint_config(path)

    tenant = config.entity["tenant-a"]
    assert tenant.base_urls[0] == "https://a.example.test/API"
    assert tenant.tenant_code == "TC-123"
    assert tenant.proxy.host == "http://proxy.local:3128"
    assert tenant.content_type == "application/json"
    # secrets stay opaque until resolved
    assert "env:AWB_TEST_SECRET" not in repr(tenant)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_endpoint_config(tmp_path / "missing.json")


def test_invalid_json(tmp_path):
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_endpoint_config(write(tmp_path, "{not json"))


def test_missing_tenant_code(tmp_path):
    path = write(tmp_path, {"entity": {"t": {"baseUrls": ["https://h.test"]}}})
    with pytest.raises(ConfigurationError, match="invalid"):
        load_endpoint_config(path)


def test_resolve_secret_env(monkeypatch):
    monkeypatch.setenv("AWB_TEST_SECRET", "s3cret")
    assert resolve_secret("env:AWB_TEST_SECRET") == "s3cret"


def test_resolve_secret_env_missing(monkeypatch):
    monkeypatch.delenv("AWB_TEST_SECRET", raising=False)
    with pytest.raises(ConfigurationError):
        resolve_secret("env:AWB_TEST_SECRET")


def test_resolve_secret_file(tmp_path):
    secret = tmp_path / "secret.txt"
    secret.write_text("from-file\n", encoding="utf-8")
    assert resolve_secret(f"file:{secret}") == "from-file"
    with pytest.raises(ConfigurationError):
        resolve_secret(f"file:{tmp_path / 'nope.txt'}")


def test_resolve_secret_plain_and_none():
    assert resolve_secret("plain") == "plain"
    assert resolve_secret(None) is None


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("AWB_CONFIG_FILE", str(tmp_path / "cfg.json"))
    monkeypatch.setenv("AWB_HTTP_TIMEOUT_SECONDS", "12.5")

    settings = AppSettings()

    assert settings.config_file == tmp_path / "cfg.json"
    assert settings.http_timeout_seconds == 12.5
