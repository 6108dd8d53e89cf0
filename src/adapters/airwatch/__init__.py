"""Adaptador REST de la plataforma (AirWatch / Workspace ONE UEM).

Por qué un paquete:
- Agrupa el subsistema de ejecución saliente (registry, executor, resolver)
  y el glue de mapeo de usuarios/grupos que lo consume.
"""

from adapters.airwatch.executor import RequestExecutor
from adapters.airwatch.groups import GroupProvisioning
from adapters.airwatch.identity_resolver import IdentityResolver
from adapters.airwatch.service_client import ServiceClientRegistry
from adapters.airwatch.users import UserProvisioning

__all__ = [
	"GroupProvisioning",
	"IdentityResolver",
	"RequestExecutor",
	"ServiceClientRegistry",
	"UserProvisioning",
]
