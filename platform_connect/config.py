# platform_connect/config.py
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./platform_connect.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DEFAULT_APP_BASE_URL = "http://localhost:3000"
DEFAULT_HTTP_TIMEOUT = 30.0


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# read per call so deployments (and tests) can change them without a restart
def app_base_url() -> str:
    return os.getenv("APP_BASE_URL", DEFAULT_APP_BASE_URL).rstrip("/")


def provider_http_timeout() -> float:
    return float(os.getenv("PROVIDER_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))


def fail_on_persistence_error() -> bool:
    return env_flag("FAIL_ON_PERSISTENCE_ERROR", default=False)
