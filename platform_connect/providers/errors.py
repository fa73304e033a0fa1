# platform_connect/providers/errors.py
from typing import Optional


class OAuthFlowError(Exception):
    """Base error for anything that breaks a provider OAuth exchange."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider


class ProviderNotConfiguredError(OAuthFlowError):
    pass


class ProviderRequestError(OAuthFlowError):
    """Transport failure or non-2xx answer from a provider endpoint."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(provider, message)
        self.status_code = status_code


class IdentityResolutionError(OAuthFlowError):
    pass


class UnknownProviderError(KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name
