"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Carga el fichero de endpoint (tenants, base URLs, proxy) una sola vez y lo
  valida en el borde; el resto del código solo ve `TenantConfig`.
"""

from __future__ import annotations

import json
import os
import sys
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import EndpointConfig
from core.errors import ConfigurationError


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "airwatch-bridge"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "airwatch-bridge"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "airwatch-bridge"
    return Path.home() / ".config" / "airwatch-bridge"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación."""

    model_config = SettingsConfigDict(
        env_prefix="AWB_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    config_file: Path = Field(
        default_factory=lambda: get_user_config_dir() / "airwatch-bridge.json",
        description="Fichero JSON con la sección `endpoint.entity`.",
    )
    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout de inactividad por request (segundos).",
    )
    user_agent: str = Field(
        default="airwatch-bridge/0.1",
        min_length=1,
        description="User-Agent para peticiones a la plataforma.",
    )
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text", description="'json' o 'text'.")


def resolve_secret(value: SecretStr | str | None) -> str | None:
    """Expande referencias de secretos.

    Formatos:
    - `env:NOMBRE`  -> variable de entorno
    - `file:/ruta`  -> contenido del fichero (sin salto final)
    - cualquier otro valor se usa tal cual
    """

    if value is None:
        return None
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    if raw.startswith("env:"):
        name = raw[4:]
        resolved = os.environ.get(name)
        if resolved is None:
            raise ConfigurationError(f"Secret reference points to unset environment variable {name}")
        return resolved
    if raw.startswith("file:"):
        path = Path(raw[5:])
        try:
            return path.read_text(encoding="utf-8").rstrip("\r\n")
        except OSError as exc:
            raise ConfigurationError(f"Secret reference points to unreadable file {path}") from exc
    return raw


def load_endpoint_config(path: Path) -> EndpointConfig:
    """Carga y valida `{"endpoint": {"entity": {...}}}`.

    Acepta también el objeto `endpoint` en la raíz.
    """

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file {path} not found") from exc
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Configuration file {path} is not valid JSON") from exc

    if isinstance(data, dict) and isinstance(data.get("endpoint"), dict):
        data = data["endpoint"]
    try:
        return EndpointConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Configuration file {path} is invalid: {exc}") from exc


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
