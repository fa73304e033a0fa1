"""Built-in providers: Asana, ClickUp, Monday.com, Notion."""

from typing import Any, Dict, Optional

import httpx

from .client import request_json
from .errors import IdentityResolutionError
from .registry import (
    TOKEN_AUTH_BASIC_JSON,
    TOKEN_AUTH_FORM,
    Identity,
    ProviderDefinition,
    register_provider,
)


def _dig(obj: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a step is missing."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _build_identity(
    provider: str,
    raw_id: Any,
    name: Any,
    workspace_name: Optional[str] = None,
) -> Identity:
    if raw_id is None or raw_id == "":
        raise IdentityResolutionError(provider, "identity response has no user id")
    # numeric ids (clickup, monday) are stored as text
    return Identity(
        platform_user_id=str(raw_id),
        platform_username=str(name) if name else "",  # filled with the provider default by the client
        workspace_name=workspace_name,
    )


# --- Asana ---

ASANA_ME_URL = "https://app.asana.com/api/1.0/users/me"


async def _asana_identity(http: httpx.AsyncClient, token_data: Dict[str, Any]) -> Identity:
    body = await request_json(
        http,
        "asana",
        "GET",
        ASANA_ME_URL,
        headers={"Authorization": f"Bearer {token_data['access_token']}", "Accept": "application/json"},
    )
    return _build_identity("asana", _dig(body, "data", "gid"), _dig(body, "data", "name"))


register_provider(ProviderDefinition(
    name="asana",
    display_name="Asana",
    authorize_url="https://app.asana.com/-/oauth_authorize",
    token_url="https://app.asana.com/-/oauth_token",
    token_auth_style=TOKEN_AUTH_FORM,
    resolve_identity=_asana_identity,
))


# --- ClickUp ---

CLICKUP_USER_URL = "https://api.clickup.com/api/v2/user"


async def _clickup_identity(http: httpx.AsyncClient, token_data: Dict[str, Any]) -> Identity:
    # clickup wants the bare token, no "Bearer" prefix
    body = await request_json(
        http,
        "clickup",
        "GET",
        CLICKUP_USER_URL,
        headers={"Authorization": token_data["access_token"], "Content-Type": "application/json"},
    )
    return _build_identity("clickup", _dig(body, "user", "id"), _dig(body, "user", "username"))


register_provider(ProviderDefinition(
    name="clickup",
    display_name="ClickUp",
    authorize_url="https://app.clickup.com/api",
    token_url="https://api.clickup.com/api/v2/oauth/token",
    token_auth_style=TOKEN_AUTH_FORM,
    resolve_identity=_clickup_identity,
))


# --- Monday.com ---

MONDAY_API_URL = "https://api.monday.com/v2"
MONDAY_ME_QUERY = "query { me { id name email photo_original } }"


async def _monday_identity(http: httpx.AsyncClient, token_data: Dict[str, Any]) -> Identity:
    body = await request_json(
        http,
        "monday",
        "POST",
        MONDAY_API_URL,
        headers={"Authorization": f"Bearer {token_data['access_token']}", "Content-Type": "application/json"},
        json={"query": MONDAY_ME_QUERY},
    )
    if _dig(body, "errors"):
        raise IdentityResolutionError("monday", "graphql query for 'me' returned errors")
    return _build_identity("monday", _dig(body, "data", "me", "id"), _dig(body, "data", "me", "name"))


register_provider(ProviderDefinition(
    name="monday",
    display_name="Monday",
    authorize_url="https://auth.monday.com/oauth2/authorize",
    token_url="https://auth.monday.com/oauth2/token",
    token_auth_style=TOKEN_AUTH_FORM,
    resolve_identity=_monday_identity,
))


# --- Notion ---

async def _notion_identity(http: httpx.AsyncClient, token_data: Dict[str, Any]) -> Identity:
    """Notion puts the owner and workspace in the token response itself; no extra call."""
    workspace_name = token_data.get("workspace_name") or None
    raw_id = _dig(token_data, "owner", "user", "id") or token_data.get("bot_id")
    name = _dig(token_data, "owner", "user", "name") or workspace_name
    return _build_identity("notion", raw_id, name, workspace_name=workspace_name)


register_provider(ProviderDefinition(
    name="notion",
    display_name="Notion",
    authorize_url="https://api.notion.com/v1/oauth/authorize",
    token_url="https://api.notion.com/v1/oauth/token",
    token_auth_style=TOKEN_AUTH_BASIC_JSON,
    resolve_identity=_notion_identity,
    authorize_params={"owner": "user"},
))
