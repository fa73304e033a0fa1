# platform_connect/routers/oauth_router.py
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from platform_connect.dependencies.db import get_session_dep
from platform_connect.dependencies.http import get_http_client
from platform_connect.infrastructure.connections_repo import PlatformConnectionsRepository
from platform_connect.providers import get_provider
from platform_connect.providers.errors import UnknownProviderError
from platform_connect.providers.registry import ProviderDefinition
from platform_connect.services.oauth_service import OAuthConnectionService, REASON_OAUTH_FAILED

router = APIRouter(prefix="/api", tags=["oauth"])


def _provider_or_404(name: str) -> ProviderDefinition:
    try:
        return get_provider(name)
    except UnknownProviderError:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {name}")


@router.get("/auth/{provider}/callback")
async def provider_callback(
    provider: str,
    code: Optional[str] = None,
    error: Optional[str] = None,
    session: AsyncSession = Depends(get_session_dep),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    definition = _provider_or_404(provider)
    svc = OAuthConnectionService(PlatformConnectionsRepository(session), http)
    url = await svc.handle_callback(definition, code=code, error=error)
    return RedirectResponse(url)


# redirect uri some providers were registered with before the paths were unified
@router.get("/auth/callback/{provider}")
async def legacy_provider_callback(
    provider: str,
    code: Optional[str] = None,
    error: Optional[str] = None,
    session: AsyncSession = Depends(get_session_dep),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    return await provider_callback(provider, code=code, error=error, session=session, http=http)


@router.get("/oauth/{provider}")
async def provider_connect(
    provider: str,
    code: Optional[str] = None,
    error: Optional[str] = None,
    session: AsyncSession = Depends(get_session_dep),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Start a connection by sending the browser to the provider's consent page.
    When the provider comes back here with ?code= or ?error= the callback flow runs instead.
    """
    definition = _provider_or_404(provider)
    svc = OAuthConnectionService(PlatformConnectionsRepository(session), http)
    if code or error:
        url = await svc.handle_callback(definition, code=code, error=error, failure_reason=REASON_OAUTH_FAILED)
    else:
        url = svc.authorization_url(definition)
    return RedirectResponse(url)
