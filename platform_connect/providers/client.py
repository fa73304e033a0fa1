# platform_connect/providers/client.py
from typing import Any, Dict

import httpx
import structlog

from .errors import ProviderNotConfiguredError, ProviderRequestError
from .registry import (
    TOKEN_AUTH_BASIC_JSON,
    TOKEN_AUTH_FORM,
    Identity,
    ProviderCredentials,
    ProviderDefinition,
)

logger = structlog.get_logger(__name__)


async def request_json(http: httpx.AsyncClient, provider: str, method: str, url: str, **kwargs) -> Any:
    """
    Send one request to a provider endpoint and return the decoded JSON body.
    Raises ProviderRequestError on transport errors, non-2xx answers and non-JSON bodies.
    """
    try:
        resp = await http.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise ProviderRequestError(provider, f"{method} {url} failed: {exc.__class__.__name__}") from exc

    logger.debug("provider_response", provider=provider, method=method, url=url, status_code=resp.status_code)
    if resp.status_code >= 400:
        raise ProviderRequestError(
            provider, f"{method} {url} returned HTTP {resp.status_code}", status_code=resp.status_code
        )
    try:
        return resp.json()
    except ValueError as exc:
        raise ProviderRequestError(
            provider, f"{method} {url} returned a non-JSON body", status_code=resp.status_code
        ) from exc


class ProviderOAuthClient:
    """Token exchange and identity lookup for one provider, over an injected httpx client."""

    def __init__(self, provider: ProviderDefinition, credentials: ProviderCredentials, http: httpx.AsyncClient):
        self.provider = provider
        self.credentials = credentials
        self.http = http

    def _require_credentials(self) -> None:
        if not self.credentials.client_id:
            raise ProviderNotConfiguredError(self.provider.name, f"{self.provider.env_prefix}_CLIENT_ID is not configured")
        if not self.credentials.client_secret:
            raise ProviderNotConfiguredError(self.provider.name, f"{self.provider.env_prefix}_CLIENT_SECRET is not configured")

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        self._require_credentials()
        creds = self.credentials

        if self.provider.token_auth_style == TOKEN_AUTH_BASIC_JSON:
            body = await request_json(
                self.http,
                self.provider.name,
                "POST",
                self.provider.token_url,
                json={"grant_type": "authorization_code", "code": code, "redirect_uri": creds.redirect_uri},
                auth=(creds.client_id, creds.client_secret),
            )
        elif self.provider.token_auth_style == TOKEN_AUTH_FORM:
            body = await request_json(
                self.http,
                self.provider.name,
                "POST",
                self.provider.token_url,
                data={
                    "grant_type": "authorization_code",
                    "client_id": creds.client_id,
                    "client_secret": creds.client_secret,
                    "redirect_uri": creds.redirect_uri,
                    "code": code,
                },
                headers={"Accept": "application/json"},
            )
        else:
            raise ValueError(f"unsupported token auth style: {self.provider.token_auth_style}")

        if not isinstance(body, dict):
            raise ProviderRequestError(self.provider.name, "token endpoint returned a non-object body")
        # key names only, token values never reach the log
        logger.info("oauth_token_response", provider=self.provider.name, keys=sorted(body.keys()))
        return body

    async def resolve_identity(self, token_data: Dict[str, Any]) -> Identity:
        identity = await self.provider.resolve_identity(self.http, token_data)
        if not identity.platform_username:
            identity.platform_username = self.provider.fallback_username
        return identity
