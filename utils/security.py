"""
security helpers:
- Access token creation/verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional

import jwt

from utils.timeutils import utcnow


class InvalidAccessToken(Exception):
    """Raised when an access token is expired, tampered with or of the wrong type."""


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


class AccessTokenSigner:
    """Mints and verifies the short-lived HS256 access tokens.

    Access tokens are never persisted; they only carry the user id and the
    role claims supplied by the caller.
    """

    def __init__(
        self,
        secret: str,
        expires: timedelta,
        algorithm: str = "HS256",
        issuer: str = "session-token-service",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.secret = secret
        self.expires = expires
        self.algorithm = algorithm
        self.issuer = issuer
        self.clock = clock

    @property
    def expires_in(self) -> int:
        return int(self.expires.total_seconds())

    def create(self, subject: str, roles: Optional[Iterable[str]] = None, jti: str = None) -> str:
        now = self.clock()
        payload = {
            "iss": self.issuer,
            "sub": str(subject),
            "iat": int(_timestamp(now)),
            "exp": int(_timestamp(now + self.expires)),
            "type": "access",
            "jti": jti or generate_jti(),
            "roles": list(roles or []),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str, expected_type: str = "access") -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises InvalidAccessToken on a bad signature,
        expiry, wrong issuer or wrong token type.
        """
        # exp is checked against self.clock below, not the wall clock
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "require": ["exp", "sub", "jti"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidAccessToken(f"Invalid token: {exc}")

        exp = decoded["exp"]
        if not isinstance(exp, int):
            raise InvalidAccessToken("Invalid token: exp must be an integer")
        if exp <= int(_timestamp(self.clock())):
            raise InvalidAccessToken("Token expired")

        if decoded.get("type") != expected_type:
            raise InvalidAccessToken("Wrong token type")
        return decoded


def _timestamp(value: datetime) -> float:
    # naive datetimes are UTC throughout the service
    return (value - datetime(1970, 1, 1)).total_seconds()


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of an `Authorization: Bearer <token>` header, or None."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1] or None
