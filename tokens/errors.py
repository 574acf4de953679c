"""
Failures raised by the refresh-token core.

Every rotation failure carries a `kind` so the audit log can tell them apart,
while the HTTP layer answers all of them with the same generic 401.
"""

UNKNOWN_TOKEN = "UNKNOWN_TOKEN"
EXPIRED = "EXPIRED"
REVOKED = "REVOKED"
REUSE_DETECTED = "REUSE_DETECTED"
PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


class TokenError(Exception):
    kind = "TOKEN_ERROR"
    default_message = "Refresh token rejected"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class RefreshTokenRejected(TokenError):
    """Base for the four outcomes of a failed rotation."""


class UnknownTokenError(RefreshTokenRejected):
    kind = UNKNOWN_TOKEN
    default_message = "Refresh token not found"


class ExpiredTokenError(RefreshTokenRejected):
    kind = EXPIRED
    default_message = "Refresh token has expired"


class RevokedTokenError(RefreshTokenRejected):
    kind = REVOKED
    default_message = "Refresh token has been revoked"


class TokenReuseError(RefreshTokenRejected):
    """An already rotated token was presented again; its family is revoked."""
    kind = REUSE_DETECTED
    default_message = "Token reuse detected - all tokens in family revoked"

    def __init__(self, family_id=None, message=None):
        super().__init__(message)
        self.family_id = family_id


class PersistenceError(TokenError):
    """The store could not commit; nothing was changed and the call may be retried."""
    kind = PERSISTENCE_ERROR
    default_message = "Token store unavailable"


class UnknownUserError(TokenError):
    kind = "UNKNOWN_USER"
    default_message = "User not found"


class SessionNotFoundError(TokenError):
    kind = "SESSION_NOT_FOUND"
    default_message = "Session not found"
