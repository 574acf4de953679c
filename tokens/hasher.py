"""One-way transform of bearer secrets into store lookup keys."""
import hashlib
import secrets

REFRESH_SECRET_BYTES = 48


def generate_refresh_secret() -> str:
    """Return a fresh URL-safe refresh secret (64 characters)."""
    return secrets.token_urlsafe(REFRESH_SECRET_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a refresh secret; the only form ever stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
