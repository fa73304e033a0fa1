"""Provider registration and lookup."""

import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..config import app_base_url, env_flag
from .errors import UnknownProviderError

TOKEN_AUTH_FORM = "form"  # client id/secret in a form-encoded body
TOKEN_AUTH_BASIC_JSON = "basic_json"  # HTTP Basic credentials, JSON body


@dataclass
class Identity:
    """The external account an access token belongs to."""
    platform_user_id: str
    platform_username: str
    workspace_name: Optional[str] = None


@dataclass
class ProviderCredentials:
    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: str
    enabled: bool


IdentityResolver = Callable[[httpx.AsyncClient, Dict[str, Any]], Awaitable[Identity]]


@dataclass
class ProviderDefinition:
    """Everything that differs between two providers' OAuth flows."""
    name: str
    display_name: str
    authorize_url: str
    token_url: str
    token_auth_style: str  # TOKEN_AUTH_FORM or TOKEN_AUTH_BASIC_JSON
    resolve_identity: IdentityResolver
    authorize_params: Dict[str, str] = field(default_factory=dict)

    @property
    def env_prefix(self) -> str:
        return self.name.upper()

    @property
    def fallback_username(self) -> str:
        return f"{self.display_name} User"

    def default_redirect_uri(self) -> str:
        return f"{app_base_url()}/api/auth/{self.name}/callback"

    def credentials(self) -> ProviderCredentials:
        """Read this provider's client settings from the environment."""
        prefix = self.env_prefix
        return ProviderCredentials(
            client_id=os.getenv(f"{prefix}_CLIENT_ID") or None,
            client_secret=os.getenv(f"{prefix}_CLIENT_SECRET") or None,
            redirect_uri=os.getenv(f"{prefix}_REDIRECT_URI") or self.default_redirect_uri(),
            enabled=env_flag(f"{prefix}_ENABLED", default=True),
        )


# Global registry
PROVIDER_REGISTRY: Dict[str, ProviderDefinition] = {}


def register_provider(provider: ProviderDefinition):
    """Register a provider in the global registry."""
    PROVIDER_REGISTRY[provider.name] = provider


def get_provider(name: str) -> ProviderDefinition:
    provider = PROVIDER_REGISTRY.get(name.lower())
    if provider is None:
        raise UnknownProviderError(name)
    return provider
