"""Jerarquía de errores del bridge.

Por qué una jerarquía propia:
- El gateway que nos llama necesita errores clasificados, nunca excepciones
  crudas de transporte (httpx, errno, DNS).
- Cada error lleva contexto (tenant, método, path) suficiente para
  diagnosticar sin filtrar códigos internos como ECONNREFUSED.

Reglas:
- `ConfigurationError` es fatal y no se reintenta.
- Solo `UnableToConnectService` / `UnableToConnectHost` salen del bucle de
  failover; el resto de errores de transporte se propagan al primer fallo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categorías de alto nivel para enrutar/manejar errores."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    APPLICATION = "application"
    NOT_FOUND = "not_found"


@dataclass
class ErrorContext:
    """Contexto de la petición que originó el error."""

    tenant: str | None = None
    method: str | None = None
    path: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def describe(self) -> str:
        parts = [p for p in (self.method, self.path) if p]
        where = " ".join(parts)
        if self.tenant and where:
            return f"[{self.tenant}] {where}"
        return f"[{self.tenant}]" if self.tenant else where


class BridgeError(Exception):
    """Base de todos los errores visibles para el llamador."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.context = context or ErrorContext()

    def to_dict(self) -> dict[str, Any]:
        """Sobre estable para CLI/logs."""

        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "tenant": self.context.tenant,
                    "method": self.context.method,
                    "path": self.context.path,
                },
            }
        }


# ─── Configuración / validación ─────────────────────────────────


class ConfigurationError(BridgeError):
    """Configuración ausente o inválida (fatal)."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(message, "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION, context)


class UnknownTenant(ConfigurationError):
    """El tenant (base entity) no existe en la configuración."""

    def __init__(self, tenant: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            f"Configuration is missing required baseEntity configuration for '{tenant}'",
            context or ErrorContext(tenant=tenant),
        )
        self.code = "UNKNOWN_TENANT"
        self.tenant = tenant


class MalformedAnchor(BridgeError):
    """Anchor/UUID con formato inválido."""

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(
            f"Malformed anchor {value!r}: {reason}",
            "MALFORMED_ANCHOR",
            ErrorCategory.VALIDATION,
        )
        self.value = value


class UnsupportedAttributes(BridgeError):
    """El objeto de entrada trae atributos que el endpoint no soporta."""

    def __init__(self, attributes: list[str], supported: list[str]) -> None:
        super().__init__(
            f"unsupported scim attributes: {', '.join(attributes)} "
            f"(supporting only these attributes: {', '.join(supported)})",
            "UNSUPPORTED_ATTRIBUTES",
            ErrorCategory.VALIDATION,
        )
        self.attributes = attributes


# ─── Transporte ─────────────────────────────────────────────────


class TransportError(BridgeError):
    """Fallo de red que no se pudo (o no se debe) recuperar."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        code: str = "TRANSPORT_ERROR",
        category: ErrorCategory = ErrorCategory.TRANSPORT,
    ) -> None:
        super().__init__(message, code, category, context)


class UnableToConnectService(TransportError):
    """Conexión rechazada en todas las base URLs configuradas."""

    def __init__(self, context: ErrorContext | None = None) -> None:
        ctx = context or ErrorContext()
        super().__init__(
            f"UnableConnectingService: {ctx.describe()}".rstrip(": "),
            ctx,
            code="UNABLE_TO_CONNECT_SERVICE",
        )


class UnableToConnectHost(TransportError):
    """Ningún host de las base URLs configuradas se pudo resolver."""

    def __init__(self, context: ErrorContext | None = None) -> None:
        ctx = context or ErrorContext()
        super().__init__(
            f"UnableConnectingHost: {ctx.describe()}".rstrip(": "),
            ctx,
            code="UNABLE_TO_CONNECT_HOST",
        )


class RequestTimeoutError(TransportError):
    """Inactividad del socket más allá del timeout configurado."""

    def __init__(self, timeout_seconds: float, context: ErrorContext | None = None) -> None:
        ctx = context or ErrorContext()
        super().__init__(
            f"Request timed out after {timeout_seconds:g}s of inactivity: {ctx.describe()}",
            ctx,
            code="REQUEST_TIMEOUT",
            category=ErrorCategory.TIMEOUT,
        )
        self.timeout_seconds = timeout_seconds


# ─── Aplicación ─────────────────────────────────────────────────


class ApplicationError(BridgeError):
    """Respuesta HTTP fuera de [200, 299]."""

    def __init__(
        self,
        status_code: int,
        status_message: str,
        body: Any = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            f"Error message: {status_code} {status_message} - {_short_body(body)}",
            "APPLICATION_ERROR",
            ErrorCategory.APPLICATION,
            context,
        )
        self.status_code = status_code
        self.status_message = status_message
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["error"]["status_code"] = self.status_code
        out["error"]["body"] = self.body
        return out


class NotFoundError(BridgeError):
    """La búsqueda no devolvió el recurso y el llamador lo exigía."""

    def __init__(self, resource: str, key: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            f"No {resource} found for '{key}'",
            "NOT_FOUND",
            ErrorCategory.NOT_FOUND,
            context,
        )
        self.resource = resource
        self.key = key


def _short_body(body: Any, limit: int = 500) -> str:
    text = body if isinstance(body, str) else repr(body)
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"
