"""Shared fixtures: tenants, settings and executors over httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from adapters.airwatch import IdentityResolver, RequestExecutor, ServiceClientRegistry
from core.config import AppSettings
from core.domain.models import TenantConfig

BASE_URLS = [
    "https://a.example.test/API",
    "https://b.example.test/API",
    "https://c.example.test/API",
]
TENANT = "tenant-a"


class Recorder:
    """Wraps a MockTransport handler and keeps every request it saw."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]

    def json_bodies(self) -> list[object]:
        return [json.loads(r.content) if r.content else None for r in self.requests]


def refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("All connection attempts failed", request=request) from ConnectionRefusedError(
        111, "Connection refused"
    )


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(config_file=tmp_path / "airwatch-bridge.json", http_timeout_seconds=5.0)


@pytest.fixture
def tenants() -> dict[str, TenantConfig]:
    return {
        TENANT: TenantConfig(
            baseUrls=BASE_URLS,
            tenantCode="TC-123",
            username="api",
            password="secret",
        )
    }


@pytest.fixture
def make_executor(tenants, settings):
    def _make(handler, tenant_map=None) -> tuple[RequestExecutor, Recorder]:
        recorder = Recorder(handler)
        registry = ServiceClientRegistry(tenant_map or tenants)
        executor = RequestExecutor(registry, settings, transport=httpx.MockTransport(recorder))
        return executor, recorder

    return _make


@pytest.fixture
def make_resolver(make_executor):
    def _make(handler) -> tuple[IdentityResolver, Recorder]:
        executor, recorder = make_executor(handler)
        return IdentityResolver(executor), recorder

    return _make
