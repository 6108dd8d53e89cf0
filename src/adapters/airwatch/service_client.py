"""Registry de service clients por tenant.

Resuelve los parámetros de conexión (base URL, headers, proxy) de cada
petición. Dos modos:

- path relativo (`/system/users/...`): descriptor cacheado por tenant,
  construido desde `TenantConfig`; la base URL sale del índice de failover
  actual, así que un failover previo se respeta en llamadas posteriores.
- URL absoluta (`https://host/...`): descriptor puntual, nunca cacheado.

Contrato de caché:
- se puebla una vez por tenant;
- se invalida solo por cambio de configuración o al agotar el failover.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Mapping
from urllib.parse import urlsplit

from core.config import resolve_secret
from core.domain.models import (
    TENANT_HEADER,
    ApiVersion,
    ConnectionDescriptor,
    ProxyAgent,
    RequestOverrides,
    TenantConfig,
    is_absolute,
)
from core.errors import ConfigurationError, ErrorContext, UnknownTenant

logger = logging.getLogger(__name__)


def basic_auth(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class ServiceClientRegistry:
    """Caché de `ConnectionDescriptor` por tenant, protegida por un lock."""

    def __init__(self, tenants: Mapping[str, TenantConfig]) -> None:
        self._tenants = dict(tenants)
        self._clients: dict[str, ConnectionDescriptor] = {}
        self._lock = asyncio.Lock()

    def tenant_config(self, tenant_key: str) -> TenantConfig:
        config = self._tenants.get(tenant_key)
        if config is None:
            raise UnknownTenant(tenant_key)
        return config

    @property
    def tenant_keys(self) -> list[str]:
        return sorted(self._tenants)

    def cached(self, tenant_key: str) -> ConnectionDescriptor | None:
        """Descriptor cacheado (o None); solo para inspección."""

        return self._clients.get(tenant_key)

    async def resolve(
        self,
        tenant_key: str,
        path: str,
        overrides: RequestOverrides | None = None,
        passthrough_token: str | None = None,
        api_version: ApiVersion = ApiVersion.UNVERSIONED,
    ) -> ConnectionDescriptor:
        """Descriptor listo para una petición.

        Devuelve siempre una copia: Accept, token passthrough y overrides
        son de esta llamada y no se escriben en la caché.
        """

        config = self.tenant_config(tenant_key)

        if is_absolute(path):
            logger.debug("Using non config based client", extra={"tenant": tenant_key, "path": path})
            descriptor = self._build_absolute(tenant_key, config, path)
        else:
            async with self._lock:
                cached = self._clients.get(tenant_key)
                if cached is None:
                    logger.debug("Client have to be created", extra={"tenant": tenant_key})
                    cached = self._build_cached(tenant_key, config)
                    self._clients[tenant_key] = cached
                descriptor = cached.snapshot()

        descriptor.headers["Accept"] = api_version.accept
        if passthrough_token:
            descriptor.headers["Authorization"] = passthrough_token
        if overrides is not None:
            _apply_overrides(descriptor, overrides)
        return descriptor

    async def advance(self, tenant_key: str, from_index: int) -> str:
        """Pasa a la siguiente base URL y la devuelve.

        Compare-and-set: si otra petición ya avanzó desde `from_index`, el
        índice no se toca.
        """

        async with self._lock:
            cached = self._clients.get(tenant_key)
            if cached is None:
                cached = self._build_cached(tenant_key, self.tenant_config(tenant_key))
                self._clients[tenant_key] = cached
            if cached.failover_index == from_index:
                cached.failover_index = (from_index + 1) % len(cached.base_urls)
            return cached.base_url

    async def invalidate(self, tenant_key: str | None = None) -> None:
        async with self._lock:
            if tenant_key is None:
                self._clients.clear()
            else:
                self._clients.pop(tenant_key, None)

    # -- Internals -----------------------------------------------------------

    def _build_cached(self, tenant_key: str, config: TenantConfig) -> ConnectionDescriptor:
        if not config.base_urls:
            raise ConfigurationError(
                f"Tenant '{tenant_key}' has an empty baseUrls list",
                ErrorContext(tenant=tenant_key),
            )

        headers = {
            "Content-Type": config.content_type,
            TENANT_HEADER: config.tenant_code,
        }
        token = resolve_secret(config.token)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        elif config.username and config.password is not None:
            headers["Authorization"] = basic_auth(config.username, resolve_secret(config.password) or "")

        proxy = _proxy_agent(config)
        if proxy is not None and "Proxy-Authorization" in proxy.headers:
            headers["Proxy-Authorization"] = proxy.headers["Proxy-Authorization"]

        return ConnectionDescriptor(
            tenant_key=tenant_key,
            base_urls=tuple(config.base_urls),
            headers=headers,
            proxy=proxy,
        )

    def _build_absolute(self, tenant_key: str, config: TenantConfig, path: str) -> ConnectionDescriptor:
        parts = urlsplit(path)
        origin = f"{parts.scheme}://{parts.netloc}"
        headers = {"Content-Type": config.content_type}
        proxy = _proxy_agent(config)
        if proxy is not None and "Proxy-Authorization" in proxy.headers:
            headers["Proxy-Authorization"] = proxy.headers["Proxy-Authorization"]
        return ConnectionDescriptor(
            tenant_key=tenant_key,
            base_urls=(origin,),
            headers=headers,
            proxy=proxy,
            cached=False,
        )


def _proxy_agent(config: TenantConfig) -> ProxyAgent | None:
    proxy = config.proxy
    if proxy is None or not proxy.host:
        return None
    headers: dict[str, str] = {}
    password = resolve_secret(proxy.password)
    if proxy.username and password:
        headers["Proxy-Authorization"] = basic_auth(proxy.username, password)
    return ProxyAgent(url=proxy.host, headers=headers)


def _apply_overrides(descriptor: ConnectionDescriptor, overrides: RequestOverrides) -> None:
    if overrides.auth is not None:
        username, password = overrides.auth
        descriptor.headers["Authorization"] = basic_auth(username, password)
    descriptor.headers.update(overrides.headers)
