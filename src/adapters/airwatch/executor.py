"""Ejecutor de peticiones REST contra la plataforma.

Responsabilidad:
- Resolver el descriptor del tenant, serializar el body y hacer el
  intercambio HTTP (httpx, asíncrono).
- Clasificar el resultado: 2xx -> `ResponseEnvelope`; resto -> error tipado.
- Failover: en "connection refused" / "host not found" sobre paths
  relativos, rotar a la siguiente base URL del tenant y reintentar, como
  máximo tantas veces como base URLs haya.
"""

from __future__ import annotations

import json
import logging
import socket
from typing import Any
from urllib.parse import urlencode

import httpx

from adapters.airwatch.service_client import ServiceClientRegistry
from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import (
    FORM_CONTENT_TYPE,
    ApiVersion,
    ConnectionDescriptor,
    RequestOverrides,
    RequestSpec,
    ResponseEnvelope,
    is_absolute,
)
from core.errors import (
    ApplicationError,
    ErrorContext,
    RequestTimeoutError,
    TransportError,
    UnableToConnectHost,
    UnableToConnectService,
)
from core.observability import redact_headers

logger = logging.getLogger(__name__)

CONNECTION_REFUSED = "connection_refused"
HOST_NOT_FOUND = "host_not_found"

_REFUSED_MARKERS = ("connection refused", "econnrefused", "errno 111", "errno 61", "winerror 10061")
_NOT_FOUND_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated",
    "enotfound",
    "errno -2",
    "errno -3",
    "errno 8",
    "errno 11001",
)


def classify_connect_failure(exc: BaseException) -> str | None:
    """Devuelve CONNECTION_REFUSED / HOST_NOT_FOUND o None.

    Recorre la cadena `__cause__`/`__context__` buscando la excepción de
    socket original; si no la hay, cae a inspeccionar el mensaje.
    """

    if not isinstance(exc, httpx.ConnectError):
        return None

    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return CONNECTION_REFUSED
        if isinstance(current, socket.gaierror):
            return HOST_NOT_FOUND
        current = current.__cause__ or current.__context__

    text = str(exc).lower()
    if any(marker in text for marker in _REFUSED_MARKERS):
        return CONNECTION_REFUSED
    if any(marker in text for marker in _NOT_FOUND_MARKERS):
        return HOST_NOT_FOUND
    return None


def serialize_body(body: Any, content_type: str) -> str | None:
    if body is None:
        return None
    if content_type.split(";")[0].strip().lower() == FORM_CONTENT_TYPE:
        if isinstance(body, str):
            return body
        return urlencode(body, doseq=True)
    return json.dumps(body)


class RequestExecutor:
    """Ejecuta peticiones con clasificación de errores y failover."""

    def __init__(
        self,
        registry: ServiceClientRegistry,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._registry = registry
        self._settings = settings or AppSettings()
        self._transport = transport

    @property
    def registry(self) -> ServiceClientRegistry:
        return self._registry

    async def execute(
        self,
        tenant_key: str,
        method: str,
        path: str,
        body: Any = None,
        passthrough_token: str | None = None,
        api_version: ApiVersion = ApiVersion.UNVERSIONED,
        overrides: RequestOverrides | None = None,
    ) -> ResponseEnvelope:
        spec = RequestSpec(
            method=method.upper(),
            path=path or "",
            body=body,
            passthrough_token=passthrough_token,
            api_version=api_version,
            overrides=overrides,
        )
        return await self.send(tenant_key, spec)

    async def send(self, tenant_key: str, spec: RequestSpec) -> ResponseEnvelope:
        context = ErrorContext(tenant=tenant_key, method=spec.method, path=spec.path)
        absolute = is_absolute(spec.path)
        attempts = 0

        while True:
            descriptor = await self._registry.resolve(
                tenant_key,
                spec.path,
                overrides=spec.overrides,
                passthrough_token=spec.passthrough_token,
                api_version=spec.api_version,
            )
            try:
                envelope = await self._exchange(descriptor, spec)
            except httpx.TimeoutException as exc:
                raise RequestTimeoutError(self._settings.http_timeout_seconds, context) from exc
            except httpx.TransportError as exc:
                reason = classify_connect_failure(exc)
                if absolute or reason is None:
                    raise TransportError(
                        f"Transport failure ({type(exc).__name__}): {context.describe()}",
                        context,
                    ) from exc

                attempts += 1
                if attempts >= len(descriptor.base_urls):
                    await self._registry.invalidate(tenant_key)
                    logger.error(
                        "All base URLs failed",
                        extra={"tenant": tenant_key, "attempt": attempts, "error_code": reason},
                    )
                    if reason == CONNECTION_REFUSED:
                        raise UnableToConnectService(context) from exc
                    raise UnableToConnectHost(context) from exc

                next_url = await self._registry.advance(tenant_key, descriptor.failover_index)
                logger.warning(
                    "failover retry[%d] using baseUrl = %s",
                    attempts,
                    next_url,
                    extra={"tenant": tenant_key, "attempt": attempts, "base_url": next_url},
                )
                continue
            except httpx.RequestError as exc:
                # DecodingError y similares: no son de conexión, no hay failover
                raise TransportError(
                    f"Request failed ({type(exc).__name__}): {context.describe()}",
                    context,
                ) from exc

            if not envelope.ok:
                raise ApplicationError(envelope.status_code, envelope.status_message, envelope.body, context)
            return envelope

    async def _exchange(self, descriptor: ConnectionDescriptor, spec: RequestSpec) -> ResponseEnvelope:
        url = descriptor.url_for(spec.path)
        content = serialize_body(spec.body, descriptor.content_type)

        async with build_async_client(
            self._settings,
            extra_headers=descriptor.headers,
            proxy=descriptor.proxy,
            transport=self._transport,
        ) as client:
            response = await client.request(spec.method, url, content=content)

        envelope = ResponseEnvelope.from_text(response.status_code, response.reason_phrase, response.text)
        logger.debug(
            "doRequest %s %s headers=%s body=%s status=%s",
            spec.method,
            url,
            redact_headers(descriptor.headers),
            content,
            envelope.status_code,
            extra={
                "tenant": descriptor.tenant_key,
                "method": spec.method,
                "path": spec.path,
                "base_url": descriptor.base_url,
                "status_code": envelope.status_code,
            },
        )
        return envelope
