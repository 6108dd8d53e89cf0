"""Logging estructurado.

Por qué aquí:
- Un único `setup_logging` que la CLI llama al arrancar.
- JSON en producción (gateway), texto legible en terminal.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

_EXTRA_FIELDS = (
    "tenant",
    "method",
    "path",
    "attempt",
    "base_url",
    "status_code",
    "error_code",
)

_SECRET_HEADERS = {"authorization", "proxy-authorization"}


class JSONFormatter(logging.Formatter):
    """Formatea cada registro como una línea JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configura el root logger (idempotente)."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_awb_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._awb_handler = True  # type: ignore[attr-defined]
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copia de headers con credenciales enmascaradas (para logs)."""

    return {
        key: ("***REDACTED***" if key.lower() in _SECRET_HEADERS else value)
        for key, value in headers.items()
    }
