# platform_connect/utils.py
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog
from cryptography.fernet import Fernet, InvalidToken

logger = structlog.get_logger(__name__)

OAUTH_TOKEN_KEY = os.getenv("OAUTH_TOKEN_KEY")  # must be a base64 key for Fernet, set in prod

if not OAUTH_TOKEN_KEY:
    # dev fallback: tokens written with it are unreadable after a restart
    logger.warning("oauth_token_key_missing_using_ephemeral_key")
    OAUTH_TOKEN_KEY = Fernet.generate_key().decode()

fernet = Fernet(OAUTH_TOKEN_KEY.encode())


# --- OAuth token encryption ---
def encrypt_token(plaintext: Optional[str]) -> Optional[str]:
    if plaintext is None:
        return None
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: Optional[str]) -> Optional[str]:
    if not ciphertext:
        return None
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.warning("token_decrypt_failed")
        return None


# --- token response helpers ---

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_expires_at(expires_in: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Absolute expiry for a relative ``expires_in`` (seconds).
    Missing, empty, zero or unparseable values mean the token does not expire.
    """
    if not expires_in:
        return None
    try:
        seconds = int(float(expires_in))
    except (TypeError, ValueError):
        logger.warning("token_expires_in_unparseable", expires_in=repr(expires_in))
        return None
    now = now or utcnow()
    return now + timedelta(seconds=seconds)


def normalize_scope(scope: Any) -> Optional[str]:
    if not scope:
        return None
    if isinstance(scope, (list, tuple)):
        return " ".join(str(s) for s in scope)
    return str(scope)
