"""IdentityResolver: exact matching and the READ/MUTATE failure policy."""

import httpx
import pytest

from adapters.airwatch.identity_resolver import search_path
from core.domain.models import LookupIntent, ResourceKind
from core.errors import ApplicationError, NotFoundError

from conftest import TENANT

GROUPS = {
    "UserGroup": [
        {"UserGroupName": "engineering", "UserGroupId": 17},
        {"UserGroupName": "Sales", "UserGroupId": 23},
    ]
}

USERS = {
    "Users": [
        {
            "Uuid": "11111111-2222-3333-4444-555555555555",
            "Id": {"Value": 4021},
            "ExternalId": "ext-jdoe",
            "UserName": "jdoe",
            "Status": True,
            "Email": "jdoe@example.test",
            "CustomAttribute1": "124304d9-ec7a-443b-b460-cf80a09d00c8",
        }
    ]
}


def respond(body, status=200):
    return lambda request: httpx.Response(status, json=body)


async def test_group_is_found_by_exact_name(make_resolver):
    resolver, recorder = make_resolver(respond(GROUPS))

    identity = await resolver.resolve_anchor(TENANT, ResourceKind.GROUP_BY_NAME, "Sales")

    assert identity is not None
    assert identity.internal_id == "23"
    assert identity.numeric_id == "23"
    assert identity.external_id == "Sales"
    request = recorder.requests[0]
    assert request.url.path == "/API/system/usergroups/custom/search"
    assert request.url.params["groupname"] == "Sales"
    assert request.headers["accept"] == "application/json;version=1"


async def test_group_match_is_case_sensitive(make_resolver):
    resolver, _ = make_resolver(respond(GROUPS))
    assert await resolver.resolve_anchor(TENANT, ResourceKind.GROUP_BY_NAME, "sales") is None


async def test_group_not_in_results(make_resolver):
    resolver, _ = make_resolver(respond({"UserGroup": []}))
    assert await resolver.resolve_anchor(TENANT, ResourceKind.GROUP_BY_NAME, "Missing") is None


async def test_user_by_external_id(make_resolver):
    resolver, recorder = make_resolver(respond(USERS))

    identity = await resolver.resolve_anchor(TENANT, ResourceKind.USER_BY_EXTERNAL_ID, "ext-jdoe")

    assert identity.internal_id == "11111111-2222-3333-4444-555555555555"
    assert identity.numeric_id == "4021"
    assert identity.display_attributes["userName"] == "jdoe"
    assert identity.display_attributes["active"] is True
    assert recorder.requests[0].url.params["externalId"] == "ext-jdoe"


async def test_user_by_username(make_resolver):
    resolver, recorder = make_resolver(respond(USERS))

    identity = await resolver.resolve_anchor(TENANT, ResourceKind.USER_BY_USERNAME, "jdoe")

    assert identity.external_id == "ext-jdoe"
    assert recorder.requests[0].url.params["username"] == "jdoe"


async def test_read_intent_turns_http_failure_into_none(make_resolver):
    resolver, _ = make_resolver(respond({"message": "boom"}, status=500))
    assert await resolver.resolve_anchor(TENANT, ResourceKind.USER_BY_EXTERNAL_ID, "x") is None


async def test_mutate_intent_propagates_http_failure(make_resolver):
    resolver, _ = make_resolver(respond({"message": "boom"}, status=500))

    with pytest.raises(ApplicationError) as excinfo:
        await resolver.resolve_anchor(
            TENANT, ResourceKind.USER_BY_EXTERNAL_ID, "x", intent=LookupIntent.MUTATE
        )
    assert excinfo.value.status_code == 500


async def test_empty_search_body(make_resolver):
    resolver, _ = make_resolver(lambda request: httpx.Response(204))

    assert await resolver.resolve_anchor(TENANT, ResourceKind.GROUP_BY_NAME, "g") is None
    with pytest.raises(NotFoundError):
        await resolver.resolve_anchor(TENANT, ResourceKind.GROUP_BY_NAME, "g", intent=LookupIntent.MUTATE)


async def test_require_raises_when_nothing_matches(make_resolver):
    resolver, _ = make_resolver(respond(GROUPS))

    with pytest.raises(NotFoundError) as excinfo:
        await resolver.require(TENANT, ResourceKind.GROUP_BY_NAME, "nobody")
    assert excinfo.value.resource == "group"
    assert excinfo.value.key == "nobody"


async def test_passthrough_token_is_forwarded(make_resolver):
    resolver, recorder = make_resolver(respond(GROUPS))
    await resolver.resolve_anchor(TENANT, ResourceKind.GROUP_BY_NAME, "Sales", passthrough_token="Bearer t")
    assert recorder.requests[0].headers["authorization"] == "Bearer t"


def test_search_path_encodes_the_key():
    assert search_path(ResourceKind.GROUP_BY_NAME, "R&D team") == (
        "/system/usergroups/custom/search?groupname=R%26D+team"
    )
    assert search_path(ResourceKind.USER_BY_EXTERNAL_ID, "a@b") == "/system/users/search?externalId=a%40b"


async def test_user_match_without_uuid_resolves_to_none(make_resolver):
    resolver, _ = make_resolver(respond({"Users": [{"ExternalId": "ext-a", "UserName": "a"}]}))
    assert await resolver.resolve_anchor(TENANT, ResourceKind.USER_BY_EXTERNAL_ID, "ext-a") is None
