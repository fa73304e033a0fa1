"""OAuth providers that can be connected to the suite."""

from .registry import PROVIDER_REGISTRY, get_provider, register_provider
from . import builtin  # noqa: F401 — registers asana, clickup, monday, notion on import
