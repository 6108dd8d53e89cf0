"""Resolución de identificadores externos a ids internos.

Convierte un anchor del directorio (externalId, userName o nombre de grupo)
en el UUID/id de la plataforma mediante su endpoint de búsqueda.

Reglas:
- Coincidencia exacta y sensible a mayúsculas; gana el primer candidato.
- Sin coincidencia -> None (no es un error).
- Con intención READ, una búsqueda fallida (non-2xx / body vacío) también es
  None; con MUTATE se propaga.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from core.domain.models import ApiVersion, LookupIntent, ResolvedIdentity, ResourceKind
from core.errors import ApplicationError, ErrorContext, NotFoundError
from core.interfaces.executor import Executor

logger = logging.getLogger(__name__)

USER_SEARCH_PATH = "/system/users/search"
GROUP_SEARCH_PATH = "/system/usergroups/custom/search"

_SEARCH = {
    ResourceKind.USER_BY_EXTERNAL_ID: (USER_SEARCH_PATH, "externalId"),
    ResourceKind.USER_BY_USERNAME: (USER_SEARCH_PATH, "username"),
    ResourceKind.GROUP_BY_NAME: (GROUP_SEARCH_PATH, "groupname"),
}


def search_path(kind: ResourceKind, external_key: str) -> str:
    base, param = _SEARCH[kind]
    return f"{base}?{urlencode({param: external_key})}"


class IdentityResolver:
    def __init__(self, executor: Executor) -> None:
        self._executor = executor

    async def resolve_anchor(
        self,
        tenant_key: str,
        kind: ResourceKind,
        external_key: str,
        passthrough_token: str | None = None,
        intent: LookupIntent = LookupIntent.READ,
    ) -> ResolvedIdentity | None:
        path = search_path(kind, external_key)
        try:
            response = await self._executor.execute(
                tenant_key,
                "GET",
                path,
                passthrough_token=passthrough_token,
                api_version=ApiVersion.V1,
            )
        except ApplicationError as exc:
            if intent is LookupIntent.READ:
                logger.debug(
                    "Search failed with HTTP %s, treating as not found",
                    exc.status_code,
                    extra={"tenant": tenant_key, "path": path, "status_code": exc.status_code},
                )
                return None
            raise

        body = response.body
        if not body:
            if intent is LookupIntent.READ:
                return None
            raise NotFoundError(
                "search result",
                external_key,
                ErrorContext(tenant=tenant_key, method="GET", path=path),
            )

        if kind.is_user:
            return _match_user(body, external_key)
        return _match_group(body, external_key)

    async def require(
        self,
        tenant_key: str,
        kind: ResourceKind,
        external_key: str,
        passthrough_token: str | None = None,
    ) -> ResolvedIdentity:
        """Búsqueda MUTATE: el recurso tiene que existir."""

        found = await self.resolve_anchor(
            tenant_key, kind, external_key, passthrough_token, intent=LookupIntent.MUTATE
        )
        if found is None:
            resource = "user" if kind.is_user else "group"
            raise NotFoundError(resource, external_key, ErrorContext(tenant=tenant_key))
        return found


def _candidates(body: Any, key: str) -> list[dict[str, Any]]:
    if not isinstance(body, dict):
        return []
    items = body.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _match_user(body: Any, external_key: str) -> ResolvedIdentity | None:
    for user in _candidates(body, "Users"):
        if user.get("ExternalId") == external_key or user.get("UserName") == external_key:
            if not user.get("Uuid"):
                # sin Uuid no hay path de usuario posible
                return None
            numeric = user.get("Id")
            if isinstance(numeric, dict):
                numeric = numeric.get("Value")
            return ResolvedIdentity(
                internal_id=str(user["Uuid"]),
                external_id=user.get("ExternalId"),
                numeric_id=None if numeric is None else str(numeric),
                display_attributes={
                    "userName": user.get("UserName"),
                    "immutableId": user.get("CustomAttribute1"),
                    "active": user.get("Status"),
                    "email": user.get("Email"),
                    "firstName": user.get("FirstName"),
                    "lastName": user.get("LastName"),
                },
            )
    return None


def _match_group(body: Any, external_key: str) -> ResolvedIdentity | None:
    for group in _candidates(body, "UserGroup"):
        if group.get("UserGroupName") == external_key:
            group_id = group.get("UserGroupId")
            return ResolvedIdentity(
                internal_id=str(group_id),
                external_id=group.get("UserGroupName"),
                numeric_id=None if group_id is None else str(group_id),
                display_attributes=_group_display(group),
            )
    return None


def _group_display(group: dict[str, Any]) -> dict[str, Any]:
    display: dict[str, Any] = {"displayName": group.get("UserGroupName")}
    members = group.get("members")
    if isinstance(members, list):
        display["members"] = [
            {"value": member.get("value")} for member in members if isinstance(member, dict)
        ]
    return display
