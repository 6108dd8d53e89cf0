"""Codec de identity anchors.

El directorio externo correlaciona usuarios con un anchor base64; la
plataforma guarda el mismo valor como UUID con guiones. Ambos son los mismos
16 bytes, pero el UUID se muestra con el layout GUID "little-endian":

    bytes:  0  1  2  3  4  5  6  7  8 ... 15
    uuid:  {3}{2}{1}{0}-{5}{4}-{7}{6}-{8}{9}-{10}...{15}

Es una permutación fija (no un hash): ida y vuelta sin pérdida.
"""

from __future__ import annotations

import base64
import binascii
import re
import uuid

from core.errors import MalformedAnchor

_HEX32_RE = re.compile(r"^[0-9a-fA-F]{32}$")
_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def decode_anchor(anchor: str) -> str:
    """Anchor base64 -> UUID con guiones (siempre en minúsculas)."""

    if not isinstance(anchor, str) or not anchor.strip():
        raise MalformedAnchor(str(anchor), "empty anchor")
    try:
        raw = base64.b64decode(anchor.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedAnchor(anchor, "invalid base64") from exc
    if len(raw) != 16:
        raise MalformedAnchor(anchor, f"expected 16 bytes, got {len(raw)}")
    return str(uuid.UUID(bytes_le=raw))


def encode_anchor(value: str) -> str:
    """UUID (con o sin guiones) -> anchor base64."""

    if not isinstance(value, str):
        raise MalformedAnchor(str(value), "expected a string")
    text = value.strip()
    if not (_UUID_RE.match(text) or _HEX32_RE.match(text)):
        raise MalformedAnchor(value, "expected 32 hex digits in 8-4-4-4-12 grouping")
    raw = uuid.UUID(hex=text.replace("-", "")).bytes_le
    return base64.b64encode(raw).decode("ascii")
