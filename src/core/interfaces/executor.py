"""Contrato del ejecutor de peticiones.

Por qué Protocol:
- Resolver y handlers dependen de esta forma, no de `RequestExecutor`.
- Los tests pueden pasar un doble que registre las llamadas.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import ApiVersion, RequestOverrides, ResponseEnvelope


@runtime_checkable
class Executor(Protocol):
    """Contrato mínimo: una petición, un `ResponseEnvelope` (o error tipado)."""

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
        ...
