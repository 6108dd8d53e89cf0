"""Provisioning de usuarios.

Glue de mapeo entre el esquema SCIM que entrega el gateway y el esquema de
usuarios de la plataforma. Toda la I/O pasa por el executor; la búsqueda de
ids internos por el `IdentityResolver`.

Mapeo de atributos:

    SCIM                      Plataforma
    userName                  userName
    externalId                externalId
    immutableId               customAttribute1 / aadMappingAttribute
    emails.work               emailAddress / emailUsername
    name.givenName            firstName
    name.familyName           lastName
    name.formatted            displayName
    active                    status
    phoneNumbers.work         phoneNumber
    department                department
    employeeNumber            employeeIdentifier
    customAttribute2..5       customAttribute2..5
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from adapters.airwatch.identity_resolver import USER_SEARCH_PATH, IdentityResolver
from core.domain.anchor import decode_anchor, encode_anchor
from core.domain.models import ApiVersion, ResourceKind
from core.errors import ErrorContext, NotFoundError, UnsupportedAttributes
from core.interfaces.executor import Executor

logger = logging.getLogger(__name__)

VALID_SCIM_ATTRIBUTES = [
    "externalId",
    "userName",
    "active",
    "name.givenName",
    "name.familyName",
    "name.formatted",
    "emails.work",
    "phoneNumbers.work",
    "department",
    "employeeNumber",
    "roles",
    "immutableId",
    "customAttribute2",
    "customAttribute3",
    "customAttribute4",
    "customAttribute5",
]

_IGNORED_KEYS = {"schemas", "meta", "id"}
_CUSTOM_ATTRIBUTES = ("customAttribute2", "customAttribute3", "customAttribute4", "customAttribute5")

ENTERPRISE_SCHEMA = "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User"
GATEWAY_SCHEMA = "urn:ietf:params:scim:schemas:extension:scimgateway:2.0:User"


def not_valid_attributes(obj: dict[str, Any]) -> list[str]:
    """Atributos del objeto que el endpoint no soporta (vacío = todo ok)."""

    invalid: list[str] = []
    for key, value in obj.items():
        if key in _IGNORED_KEYS:
            continue
        if isinstance(value, dict) and key in ("name", "emails", "phoneNumbers"):
            for sub in value:
                dotted = f"{key}.{sub}"
                if dotted not in VALID_SCIM_ATTRIBUTES:
                    invalid.append(dotted)
        elif key not in VALID_SCIM_ATTRIBUTES:
            invalid.append(key)
    return sorted(invalid)


def as_bool(value: Any) -> bool | None:
    """Normaliza estados tipo booleano ("true", "False", 1, True...)."""

    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in ("true", "1", "yes", "active", "enabled"):
        return True
    if text in ("false", "0", "no", "inactive", "disabled"):
        return False
    return None


def _work_value(obj: dict[str, Any], key: str) -> Any:
    section = obj.get(key)
    if not isinstance(section, dict):
        return None
    work = section.get("work")
    if not isinstance(work, dict):
        return None
    return work.get("value")


# ─── Operaciones de modificación ────────────────────────────────


@dataclass(frozen=True)
class StatusTransition:
    """Activar/desactivar: endpoint propio, distinto del patch."""

    active: bool


@dataclass(frozen=True)
class AttributePatch:
    body: dict[str, Any]


UserOperation = StatusTransition | AttributePatch


def build_patch_body(attrs: dict[str, Any]) -> dict[str, Any]:
    """Body del PUT con los atributos presentes (un "" también cuenta)."""

    name = attrs.get("name") if isinstance(attrs.get("name"), dict) else {}
    body: dict[str, Any] = {}
    for scim_key, vendor_key in (("givenName", "firstName"), ("familyName", "lastName"), ("formatted", "displayName")):
        if name.get(scim_key) is not None:
            body[vendor_key] = name[scim_key]
    if attrs.get("department") is not None:
        body["department"] = attrs["department"]
    if attrs.get("employeeNumber") is not None:
        body["employeeIdentifier"] = attrs["employeeNumber"]

    email = _work_value(attrs, "emails")
    if email is not None:
        body["emailAddress"] = email
        body["emailUsername"] = email
    phone = _work_value(attrs, "phoneNumbers")
    if phone is not None:
        body["phoneNumber"] = phone

    for key in _CUSTOM_ATTRIBUTES:
        if attrs.get(key) is not None:
            body[key] = attrs[key]
    return body


def plan_user_modification(current_active: Any, attrs: dict[str, Any]) -> list[UserOperation]:
    """Separa cambio de estado y cambio de atributos.

    Ambos lados se normalizan a bool antes de comparar; si el estado pedido
    no se puede interpretar, no hay transición.
    """

    ops: list[UserOperation] = []
    body = build_patch_body(attrs)
    if body:
        ops.append(AttributePatch(body))

    wanted = as_bool(attrs.get("active"))
    if wanted is not None and wanted != as_bool(current_active):
        ops.append(StatusTransition(wanted))
    return ops


class UserProvisioning:
    def __init__(self, executor: Executor, resolver: IdentityResolver) -> None:
        self._executor = executor
        self._resolver = resolver

    async def explore_users(
        self,
        tenant_key: str,
        start_index: int | None = None,
        count: int | None = None,
        passthrough_token: str | None = None,
    ) -> dict[str, Any]:
        response = await self._executor.execute(
            tenant_key, "GET", USER_SEARCH_PATH, passthrough_token=passthrough_token, api_version=ApiVersion.V1
        )
        users = response.body.get("Users") if isinstance(response.body, dict) else None
        users = users if isinstance(users, list) else []

        start = start_index or 1
        size = count if count is not None else len(users)
        resources = []
        for user in users[start - 1 : start - 1 + size]:
            if not isinstance(user, dict) or not user.get("Uuid") or not user.get("UserName"):
                continue
            resources.append(
                {
                    "userName": user["UserName"],
                    "id": user.get("ExternalId") or user["Uuid"],
                    "externalId": user.get("ExternalId"),
                }
            )
        return {"Resources": resources, "totalResults": len(users), "startIndex": start}

    async def get_user(
        self,
        tenant_key: str,
        key: str,
        search_by: str = "externalId",
        attributes: list[str] | None = None,
        passthrough_token: str | None = None,
    ) -> dict[str, Any] | None:
        kind = ResourceKind.USER_BY_USERNAME if search_by == "userName" else ResourceKind.USER_BY_EXTERNAL_ID
        identity = await self._resolver.resolve_anchor(tenant_key, kind, key, passthrough_token)
        if identity is None:
            return None

        if attributes and len(attributes) < 3:
            # Solo comprobar existencia (id/userName).
            return {
                "id": identity.external_id or identity.internal_id,
                "userName": identity.display_attributes.get("userName"),
                "externalId": identity.external_id,
            }

        response = await self._executor.execute(
            tenant_key,
            "GET",
            f"/system/users/{identity.internal_id}",
            passthrough_token=passthrough_token,
            api_version=ApiVersion.V2,
        )
        if not isinstance(response.body, dict):
            return None
        return vendor_user_to_scim(response.body)

    async def create_user(
        self,
        tenant_key: str,
        user: dict[str, Any],
        passthrough_token: str | None = None,
    ) -> dict[str, Any]:
        invalid = not_valid_attributes(user)
        if invalid:
            raise UnsupportedAttributes(invalid, VALID_SCIM_ATTRIBUTES)

        true_guid = decode_anchor(user["immutableId"]) if user.get("immutableId") else None
        name = user.get("name") if isinstance(user.get("name"), dict) else {}
        email = _work_value(user, "emails")
        active = as_bool(user.get("active"))

        body = {
            "externalId": user.get("externalId"),
            "userName": user.get("userName"),
            "status": True if active is None else active,
            "firstName": name.get("givenName"),
            "lastName": name.get("familyName"),
            "displayName": name.get("formatted"),
            "phoneNumber": _work_value(user, "phoneNumbers"),
            "department": user.get("department"),
            "employeeIdentifier": user.get("employeeNumber"),
            "emailAddress": email,
            "emailUsername": email,
            "aadMappingAttribute": true_guid,
            "customAttribute1": true_guid,
            "securityType": "directory",
        }
        for key in _CUSTOM_ATTRIBUTES:
            body[key] = user.get(key)

        logger.info("createUser", extra={"tenant": tenant_key})
        response = await self._executor.execute(
            tenant_key, "POST", "/system/Users", body, passthrough_token, ApiVersion.V2
        )
        return response.body if isinstance(response.body, dict) else {}

    async def modify_user(
        self,
        tenant_key: str,
        user_id: str,
        attrs: dict[str, Any],
        passthrough_token: str | None = None,
    ) -> list[UserOperation]:
        invalid = not_valid_attributes(attrs)
        if invalid:
            raise UnsupportedAttributes(invalid, VALID_SCIM_ATTRIBUTES)

        identity = await self._resolver.require(
            tenant_key, ResourceKind.USER_BY_EXTERNAL_ID, user_id, passthrough_token
        )
        ops = plan_user_modification(identity.display_attributes.get("active"), attrs)
        for op in ops:
            if isinstance(op, AttributePatch):
                await self._executor.execute(
                    tenant_key,
                    "PUT",
                    f"/system/Users/{identity.internal_id}",
                    op.body,
                    passthrough_token,
                    ApiVersion.V2,
                )
            else:
                if identity.numeric_id is None:
                    raise NotFoundError("numeric user id", user_id, ErrorContext(tenant=tenant_key))
                action = "activate" if op.active else "deactivate"
                await self._executor.execute(
                    tenant_key,
                    "POST",
                    f"/system/users/{identity.numeric_id}/{action}",
                    {},
                    passthrough_token,
                    ApiVersion.V1,
                )
        return ops

    async def delete_user(self, tenant_key: str, user_id: str, passthrough_token: str | None = None) -> None:
        identity = await self._resolver.require(
            tenant_key, ResourceKind.USER_BY_EXTERNAL_ID, user_id, passthrough_token
        )
        await self._executor.execute(
            tenant_key,
            "DELETE",
            f"/system/users/{identity.internal_id}",
            passthrough_token=passthrough_token,
            api_version=ApiVersion.V2,
        )


def vendor_user_to_scim(user: dict[str, Any]) -> dict[str, Any]:
    first = user.get("firstName") or ""
    last = user.get("lastName") or ""
    immutable = encode_anchor(user["customAttribute1"]) if user.get("customAttribute1") else None
    return {
        "userName": user.get("userName"),
        "id": user.get("externalId") or user.get("uuid"),
        "externalId": user.get("externalId"),
        "active": as_bool(user.get("status")),
        "name": {
            "givenName": first,
            "familyName": last,
            "formatted": " ".join(p for p in (first, last) if p),
        },
        "emails": [{"primary": True, "type": "work", "value": user.get("emailAddress")}],
        "phoneNumbers": [{"type": "work", "value": user.get("phoneNumber")}],
        ENTERPRISE_SCHEMA: {
            "department": user.get("department"),
            "employeeNumber": user.get("employeeIdentifier"),
        },
        GATEWAY_SCHEMA: {
            "immutableId": immutable,
            **{key: user.get(key) for key in _CUSTOM_ATTRIBUTES},
        },
    }
