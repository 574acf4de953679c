"""
TokenService: the single entry point the HTTP layer talks to.

Wires the store, issuer, rotation engine, revocation service, session
reporter and janitor around one DBStorage and one clock.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from tokens.issuer import TokenIssuer
from tokens.janitor import Janitor
from tokens.revocation import RevocationService
from tokens.rotation import RotationEngine
from tokens.sessions import SessionReporter
from tokens.store import TokenStore
from tokens.types import IssuedTokens, SessionMeta, SessionView
from utils.security import AccessTokenSigner
from utils.timeutils import parse_expiration, utcnow


class TokenService:
    def __init__(
        self,
        storage,
        signer: AccessTokenSigner,
        refresh_ttl: timedelta = timedelta(days=7),
        retention: timedelta = timedelta(0),
        roles_loader: Optional[Callable[[str], Iterable[str]]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if refresh_ttl <= timedelta(0):
            raise ValueError("refresh token lifetime must be positive")
        if retention < timedelta(0):
            raise ValueError("retention must not be negative")

        self.signer = signer
        self.store = TokenStore(storage)
        self.issuer = TokenIssuer(self.store, signer, refresh_ttl, clock=clock)
        self.revocation = RevocationService(self.store, clock=clock)
        self.rotation = RotationEngine(
            self.store, self.issuer, self.revocation, roles_loader=roles_loader, clock=clock
        )
        self.sessions = SessionReporter(self.store, self.revocation, clock=clock)
        self.janitor = Janitor(self.store, retention=retention, clock=clock)

    @classmethod
    def from_config(cls, config, storage, clock: Callable[[], datetime] = utcnow):
        """Build from a Flask config mapping (see api.config.BaseConfig)."""
        signer = AccessTokenSigner(
            secret=config["JWT_SECRET"],
            expires=parse_expiration(config["ACCESS_TOKEN_EXPIRES"]),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "session-token-service"),
            clock=clock,
        )
        return cls(
            storage,
            signer,
            refresh_ttl=parse_expiration(config["REFRESH_TOKEN_EXPIRES"]),
            retention=parse_expiration(config.get("REFRESH_TOKEN_RETENTION", "0s")),
            clock=clock,
        )

    def issue(self, user_id: str, meta: Optional[SessionMeta] = None, roles=None) -> IssuedTokens:
        if roles is None:
            roles = self.store.user_roles(user_id)
        return self.issuer.issue(user_id, meta, roles)

    def rotate(self, refresh_token: str, meta: Optional[SessionMeta] = None) -> IssuedTokens:
        return self.rotation.rotate(refresh_token, meta)

    def revoke_token(self, token_id: str) -> int:
        return self.revocation.revoke_token(token_id)

    def revoke_family(self, family_id: str) -> int:
        return self.revocation.revoke_family(family_id)

    def revoke_all_for_user(self, user_id: str) -> int:
        return self.revocation.revoke_all_for_user(user_id)

    def revoke_by_refresh_token(self, refresh_token: str) -> int:
        return self.revocation.revoke_by_refresh_token(refresh_token)

    def list_sessions(self, user_id: str) -> List[SessionView]:
        return self.sessions.list_sessions(user_id)

    def revoke_session(self, user_id: str, token_id: str) -> int:
        return self.sessions.revoke_session(user_id, token_id)

    def sweep(self) -> int:
        return self.janitor.sweep()
