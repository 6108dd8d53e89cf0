"""Provisioning de grupos (custom user groups)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from adapters.airwatch.identity_resolver import GROUP_SEARCH_PATH, IdentityResolver
from core.domain.models import ApiVersion, ResourceKind
from core.errors import ErrorContext, NotFoundError
from core.interfaces.executor import Executor

logger = logging.getLogger(__name__)


class GroupProvisioning:
    def __init__(self, executor: Executor, resolver: IdentityResolver) -> None:
        self._executor = executor
        self._resolver = resolver

    async def explore_groups(
        self,
        tenant_key: str,
        start_index: int | None = None,
        count: int | None = None,
        passthrough_token: str | None = None,
    ) -> dict[str, Any]:
        response = await self._executor.execute(
            tenant_key, "GET", GROUP_SEARCH_PATH, passthrough_token=passthrough_token, api_version=ApiVersion.V1
        )
        groups = response.body.get("UserGroup") if isinstance(response.body, dict) else None
        groups = groups if isinstance(groups, list) else []

        start = start_index or 1
        size = count if count is not None else len(groups)
        resources = []
        for group in groups[start - 1 : start - 1 + size]:
            if not isinstance(group, dict) or not group.get("UserGroupName"):
                continue
            name = group["UserGroupName"]
            resources.append({"displayName": name, "id": name, "externalId": name})
        return {"Resources": resources, "totalResults": len(groups), "startIndex": start}

    async def get_group(
        self,
        tenant_key: str,
        display_name: str,
        passthrough_token: str | None = None,
    ) -> dict[str, Any] | None:
        identity = await self._resolver.resolve_anchor(
            tenant_key, ResourceKind.GROUP_BY_NAME, display_name, passthrough_token
        )
        if identity is None:
            return None
        name = identity.external_id
        group: dict[str, Any] = {"displayName": name, "id": name, "externalId": name}
        if "members" in identity.display_attributes:
            group["members"] = identity.display_attributes["members"]
        return group

    async def create_group(
        self,
        tenant_key: str,
        group: dict[str, Any],
        passthrough_token: str | None = None,
    ) -> dict[str, Any]:
        response = await self._executor.execute(
            tenant_key,
            "POST",
            "/system/usergroups/createcustomusergroup",
            {"GroupName": group.get("displayName")},
            passthrough_token,
            ApiVersion.V1,
        )
        return response.body if isinstance(response.body, dict) else {}

    async def delete_group(self, tenant_key: str, group_id: str, passthrough_token: str | None = None) -> None:
        group = await self._resolver.require(tenant_key, ResourceKind.GROUP_BY_NAME, group_id, passthrough_token)
        await self._executor.execute(
            tenant_key,
            "DELETE",
            f"/system/usergroups/{group.internal_id}/delete",
            passthrough_token=passthrough_token,
            api_version=ApiVersion.V1,
        )

    async def modify_group_members(
        self,
        tenant_key: str,
        group_id: str,
        members: list[dict[str, Any]],
        passthrough_token: str | None = None,
    ) -> None:
        """Añade/quita miembros; `operation == "delete"` quita, el resto añade."""

        group = await self._resolver.require(tenant_key, ResourceKind.GROUP_BY_NAME, group_id, passthrough_token)

        async def _apply(member: dict[str, Any]) -> None:
            user = await self._resolver.require(
                tenant_key, ResourceKind.USER_BY_EXTERNAL_ID, member["value"], passthrough_token
            )
            if user.numeric_id is None:
                raise NotFoundError("numeric user id", member["value"], ErrorContext(tenant=tenant_key))
            action = "removeuserfromgroup" if member.get("operation") == "delete" else "addusertogroup"
            await self._executor.execute(
                tenant_key,
                "POST",
                f"/system/usergroups/{group.internal_id}/user/{user.numeric_id}/{action}",
                {},
                passthrough_token,
                ApiVersion.V1,
            )

        logger.info(
            "modifyGroupMembers %s: %d member(s)", group_id, len(members), extra={"tenant": tenant_key}
        )
        await asyncio.gather(*(_apply(member) for member in members))
