"""Refresh-token lifecycle: issue, rotate, revoke, report and sweep."""
from tokens.errors import (
    ExpiredTokenError,
    PersistenceError,
    RefreshTokenRejected,
    RevokedTokenError,
    SessionNotFoundError,
    TokenError,
    TokenReuseError,
    UnknownTokenError,
    UnknownUserError,
)
from tokens.service import TokenService
from tokens.types import IssuedTokens, SessionMeta, SessionView

__all__ = [
    "ExpiredTokenError",
    "IssuedTokens",
    "PersistenceError",
    "RefreshTokenRejected",
    "RevokedTokenError",
    "SessionMeta",
    "SessionNotFoundError",
    "SessionView",
    "TokenError",
    "TokenReuseError",
    "TokenService",
    "UnknownTokenError",
    "UnknownUserError",
]
