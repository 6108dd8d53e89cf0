"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y proxy para todas las llamadas salientes.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings
from core.domain.models import ProxyAgent


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    proxy: ProxyAgent | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    - Un único timeout de inactividad (connect/read/write/pool).
    - Sin redirects: la API REST no los usa y no queremos reenviar credenciales.
    - `Proxy-Authorization` viaja en el proxy, no en la petición al destino.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    headers.pop("Proxy-Authorization", None)

    kwargs: dict[str, object] = {}
    if transport is not None:
        # Un transport inyectado sustituye también al proxy.
        kwargs["transport"] = transport
    elif proxy is not None:
        kwargs["proxy"] = httpx.Proxy(proxy.url, headers=proxy.headers or None)

    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=False,
        headers=headers,
        **kwargs,
    )
