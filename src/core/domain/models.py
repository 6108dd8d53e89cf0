"""Modelos del dominio (Pydantic v2 + dataclasses).

Por qué dos estilos:
- Pydantic para lo que llega desde fuera (config JSON, respuestas de búsqueda):
  validación estricta en el borde.
- Dataclasses para estado interno y mutable (descriptor de conexión) o
  efímero (spec de request, envelope de respuesta).

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, SecretStr
from pydantic.config import ConfigDict

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
TENANT_HEADER = "aw-tenant-code"


class ApiVersion(Enum):
    """Variante de Accept que espera el endpoint."""

    UNVERSIONED = None
    V1 = 1
    V2 = 2

    @property
    def accept(self) -> str:
        if self is ApiVersion.UNVERSIONED:
            return JSON_CONTENT_TYPE
        return f"{JSON_CONTENT_TYPE};version={self.value}"


class ResourceKind(str, Enum):
    USER_BY_EXTERNAL_ID = "externalId"
    USER_BY_USERNAME = "userName"
    GROUP_BY_NAME = "group"

    @property
    def is_user(self) -> bool:
        return self is not ResourceKind.GROUP_BY_NAME


class LookupIntent(str, Enum):
    """Qué hace el llamador con el resultado de una búsqueda.

    - READ: un fallo de búsqueda equivale a "no existe".
    - MUTATE: el recurso tiene que existir; los fallos se propagan.
    """

    READ = "read"
    MUTATE = "mutate"


# ─── Configuración por tenant ───────────────────────────────────


class ProxyConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    host: str = Field(..., min_length=1, description="URL del proxy, p.ej. http://proxy:3128")
    username: str | None = None
    password: SecretStr | None = Field(
        default=None,
        description="Password o referencia (env:NOMBRE / file:/ruta).",
    )


class TenantConfig(BaseModel):
    """Configuración inmutable de un tenant (base entity)."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    base_urls: list[str] = Field(
        default_factory=list,
        alias="baseUrls",
        description="Base URLs ordenadas; la primera es la primaria.",
    )
    tenant_code: str = Field(..., min_length=1, alias="tenantCode")
    proxy: ProxyConfig | None = None
    username: str | None = None
    password: SecretStr | None = None
    token: SecretStr | None = Field(default=None, description="Bearer token estático.")
    content_type: str = Field(default=JSON_CONTENT_TYPE, alias="contentType")


class EndpointConfig(BaseModel):
    """Raíz `endpoint` del fichero de configuración."""

    model_config = ConfigDict(extra="ignore")

    entity: dict[str, TenantConfig] = Field(default_factory=dict)


# ─── Conexión / request / response ──────────────────────────────


@dataclass(frozen=True)
class ProxyAgent:
    url: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestOverrides:
    """Opciones puntuales que se mezclan sobre el descriptor."""

    headers: dict[str, str] = field(default_factory=dict)
    auth: tuple[str, str] | None = None


@dataclass
class ConnectionDescriptor:
    """Parámetros de conexión resueltos para un tenant.

    El registry guarda una instancia por tenant (`cached=True`) y entrega
    copias por llamada; `failover_index` es el único campo que muta.
    """

    tenant_key: str
    base_urls: tuple[str, ...]
    headers: dict[str, str] = field(default_factory=dict)
    proxy: ProxyAgent | None = None
    failover_index: int = 0
    cached: bool = True

    @property
    def base_url(self) -> str:
        return self.base_urls[self.failover_index % len(self.base_urls)]

    @property
    def protocol(self) -> str:
        return urlsplit(self.base_url).scheme

    @property
    def host(self) -> str | None:
        return urlsplit(self.base_url).hostname

    @property
    def port(self) -> int | None:
        return urlsplit(self.base_url).port

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", JSON_CONTENT_TYPE)

    def url_for(self, path: str) -> str:
        if is_absolute(path):
            return path
        if not path:
            return self.base_url
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def snapshot(self, **changes: Any) -> "ConnectionDescriptor":
        return replace(self, headers=dict(self.headers), **changes)


@dataclass(frozen=True)
class RequestSpec:
    method: str
    path: str
    body: Any = None
    passthrough_token: str | None = None
    api_version: ApiVersion = ApiVersion.UNVERSIONED
    overrides: RequestOverrides | None = None


@dataclass(frozen=True)
class ResponseEnvelope:
    status_code: int
    status_message: str
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299

    @classmethod
    def from_text(cls, status_code: int, status_message: str, text: str) -> "ResponseEnvelope":
        """Construye el envelope; el parseo nunca lanza (JSON o texto crudo)."""

        if not text:
            return cls(status_code, status_message, None)
        try:
            body: Any = json.loads(text)
        except ValueError:
            body = text
        return cls(status_code, status_message, body)


# ─── Resultados de identidad ────────────────────────────────────


class ResolvedIdentity(BaseModel):
    """Resultado de `IdentityResolver.resolve_anchor`."""

    model_config = ConfigDict(extra="ignore")

    internal_id: str = Field(..., description="UUID (usuarios) o id de grupo en la plataforma.")
    external_id: str | None = Field(default=None, description="Identificador visto por el directorio.")
    numeric_id: str | None = Field(
        default=None,
        description="Id numérico usado por activate/deactivate y membresías.",
    )
    display_attributes: dict[str, Any] = Field(default_factory=dict)


def is_absolute(path: str | None) -> bool:
    """True si el path ya trae host (modo URL absoluta)."""

    if not path:
        return False
    return bool(urlsplit(path).hostname)
