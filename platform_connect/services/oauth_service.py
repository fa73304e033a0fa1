# platform_connect/services/oauth_service.py
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from starlette.datastructures import URL
import structlog

from platform_connect import config
from platform_connect.infrastructure.connections_repo import PlatformConnectionsRepository
from platform_connect.providers.client import ProviderOAuthClient
from platform_connect.providers.registry import Identity, ProviderDefinition
from platform_connect.utils import compute_expires_at, encrypt_token, normalize_scope, utcnow

logger = structlog.get_logger(__name__)

RETURN_PAGE = "/export-manager"

# reason-code suffixes for the error redirect
REASON_OAUTH_ERROR = "oauth_error"
REASON_NO_CODE = "no_code"
REASON_COMING_SOON = "coming_soon"
REASON_CALLBACK_FAILED = "callback_failed"
REASON_OAUTH_FAILED = "oauth_failed"
REASON_PERSIST_FAILED = "persist_failed"


def success_url(provider: str) -> str:
    return str(URL(config.app_base_url() + RETURN_PAGE).include_query_params(connected=provider, success="true"))


def error_url(reason: str) -> str:
    return str(URL(config.app_base_url() + RETURN_PAGE).include_query_params(error=reason))


def missing_client_id_reason(provider: str) -> str:
    return f"missing_{provider}_client_id"


def build_connection_values(
    provider: ProviderDefinition,
    token_data: Dict[str, Any],
    identity: Identity,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Normalize a token response and an identity into a platform_connections row."""
    now = now or utcnow()
    return {
        "platform": provider.name,
        "access_token": encrypt_token(token_data["access_token"]),
        "refresh_token": encrypt_token(token_data.get("refresh_token") or None),
        "token_type": "Bearer",
        "expires_at": compute_expires_at(token_data.get("expires_in"), now=now),
        "platform_user_id": identity.platform_user_id,
        "platform_username": identity.platform_username,
        "platform_workspace_name": identity.workspace_name,
        "scope": normalize_scope(token_data.get("scope")),
        "is_active": True,
        "connected_at": now,
        "updated_at": now,
        "last_used_at": now,
    }


class OAuthConnectionService:
    """
    Drives one provider callback: token exchange, identity lookup, upsert.
    Every outcome is a URL to redirect the browser to; nothing raises out of handle_callback.
    """

    def __init__(self, repo: PlatformConnectionsRepository, http: httpx.AsyncClient):
        self.repo = repo
        self.http = http

    def authorization_url(self, provider: ProviderDefinition) -> str:
        """Where to send the browser to start a connection (or why it can't start)."""
        creds = provider.credentials()
        if not creds.client_id:
            logger.error("oauth_client_id_missing", provider=provider.name)
            return error_url(missing_client_id_reason(provider.name))
        if not creds.enabled:
            logger.info("oauth_provider_disabled", provider=provider.name)
            return error_url(f"{provider.name}_{REASON_COMING_SOON}")

        params = {
            "client_id": creds.client_id,
            "redirect_uri": creds.redirect_uri,
            "response_type": "code",
            **provider.authorize_params,
        }
        logger.info("oauth_authorize_redirect", provider=provider.name)
        return str(URL(provider.authorize_url).include_query_params(**params))

    async def handle_callback(
        self,
        provider: ProviderDefinition,
        code: Optional[str],
        error: Optional[str],
        failure_reason: str = REASON_CALLBACK_FAILED,
    ) -> str:
        name = provider.name
        log = logger.bind(provider=name)
        log.info("oauth_callback_received", has_code=bool(code), error=error)

        if error:
            log.warning("oauth_provider_error", error=error)
            return error_url(f"{name}_{REASON_OAUTH_ERROR}")

        creds = provider.credentials()
        if not creds.enabled:
            log.info("oauth_provider_disabled")
            return error_url(f"{name}_{REASON_COMING_SOON}")

        if not code:
            log.warning("oauth_code_missing")
            return error_url(f"{name}_{REASON_NO_CODE}")

        if not creds.client_id:
            log.error("oauth_client_id_missing")
            return error_url(missing_client_id_reason(name))

        try:
            client = ProviderOAuthClient(provider, creds, self.http)
            token_data = await client.exchange_code(code)
            if not token_data.get("access_token"):
                # nothing to store; the user still lands on the success page
                log.warning("oauth_access_token_missing", keys=sorted(token_data.keys()))
                return success_url(name)
            identity = await client.resolve_identity(token_data)
            values = build_connection_values(provider, token_data, identity)
        except Exception as e:
            # details stay in the server log, the browser only sees the reason code
            log.exception("oauth_callback_failed", error_type=e.__class__.__name__, error=str(e))
            return error_url(f"{name}_{failure_reason}")

        try:
            await self.repo.upsert(values)
        except Exception as e:
            log.exception(
                "connection_persist_failed",
                platform_user_id=identity.platform_user_id,
                error_type=e.__class__.__name__,
            )
            if config.fail_on_persistence_error():
                return error_url(f"{name}_{REASON_PERSIST_FAILED}")
            return success_url(name)

        log.info(
            "connection_stored",
            platform_user_id=identity.platform_user_id,
            platform_username=identity.platform_username,
            expires_at=values["expires_at"].isoformat() if values["expires_at"] else None,
        )
        return success_url(name)
