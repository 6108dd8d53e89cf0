"""Ensamblado del subsistema de provisioning.

Este módulo arma registry -> executor -> resolver -> handlers a partir de
`AppSettings` y del fichero de endpoint, para que la CLI (o el gateway)
reciba un único objeto listo para usar y los tests puedan inyectar un
transport de httpx.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from adapters.airwatch import (
    GroupProvisioning,
    IdentityResolver,
    RequestExecutor,
    ServiceClientRegistry,
    UserProvisioning,
)
from core.config import AppSettings, load_endpoint_config
from core.domain.models import TenantConfig


@dataclass
class Provisioning:
    """Componentes cableados para un conjunto de tenants."""

    registry: ServiceClientRegistry
    executor: RequestExecutor
    resolver: IdentityResolver
    users: UserProvisioning
    groups: GroupProvisioning


def build_provisioning(
    settings: AppSettings | None = None,
    *,
    tenants: Mapping[str, TenantConfig] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Provisioning:
    """Crea el grafo de componentes.

    Si no se pasan `tenants`, se leen de `settings.config_file`.
    """

    settings = settings or AppSettings()
    if tenants is None:
        tenants = load_endpoint_config(settings.config_file).entity

    registry = ServiceClientRegistry(tenants)
    executor = RequestExecutor(registry, settings, transport=transport)
    resolver = IdentityResolver(executor)
    return Provisioning(
        registry=registry,
        executor=executor,
        resolver=resolver,
        users=UserProvisioning(executor, resolver),
        groups=GroupProvisioning(executor, resolver),
    )
