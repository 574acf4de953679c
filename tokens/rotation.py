"""
Refresh-token rotation with reuse detection.

A record is ACTIVE (not used, not revoked, not expired), USED, REVOKED or
EXPIRED (derived from expires_at). USED and REVOKED are terminal for that
record; the session lives on through the successor.

rotate() walks the checks in order:

1. unknown hash            -> UnknownTokenError
2. revoked                 -> RevokedTokenError (TokenReuseError if it was also used)
3. expired                 -> ExpiredTokenError
4. already used            -> revoke the whole family, TokenReuseError
5. ACTIVE                  -> insert the successor, then flip is_used with a
                              conditional UPDATE; only the caller whose UPDATE
                              hit the row commits, every other caller rolls back
                              and falls into step 4.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from models.refresh_token import RefreshToken
from tokens.errors import (
    ExpiredTokenError,
    RevokedTokenError,
    TokenReuseError,
    UnknownTokenError,
)
from tokens.hasher import hash_token
from tokens.issuer import TokenIssuer
from tokens.revocation import RevocationService
from tokens.store import TokenStore
from tokens.types import IssuedTokens, SessionMeta
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class RotationEngine:
    def __init__(
        self,
        store: TokenStore,
        issuer: TokenIssuer,
        revocation: RevocationService,
        roles_loader: Optional[Callable[[str], Iterable[str]]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.issuer = issuer
        self.revocation = revocation
        self.roles_loader = roles_loader or store.user_roles
        self.clock = clock

    def rotate(self, presented_token: str, meta: Optional[SessionMeta] = None) -> IssuedTokens:
        meta = meta or SessionMeta()
        record = self.store.find_by_hash(hash_token(presented_token or ""))
        if record is None:
            raise UnknownTokenError()

        now = self.clock()
        if record.is_revoked:
            if record.is_used:
                self._reuse_detected(record, meta)
            raise RevokedTokenError()
        if record.is_expired(now):
            raise ExpiredTokenError()
        if record.is_used:
            self._reuse_detected(record, meta)

        roles = list(self.roles_loader(record.user_id))
        secret, successor = self.issuer.new_record(record.user_id, record.family_id, meta, now)
        self.store.add(successor)
        if not self.store.mark_used(record.id, successor.id, now):
            # lost the race; the successor goes away with the rollback
            self.store.rollback()
            self._classify_lost_race(record.id, meta)
        self.store.commit()

        logger.info(
            "rotated refresh token %s -> %s (family %s)", record.id, successor.id, record.family_id
        )
        return IssuedTokens(
            access_token=self.issuer.signer.create(record.user_id, roles),
            refresh_token=secret,
            expires_in=self.issuer.signer.expires_in,
            family_id=record.family_id,
        )

    def _classify_lost_race(self, token_id: str, meta: SessionMeta):
        current = self.store.get(token_id)
        if current is None:
            raise UnknownTokenError()
        if current.is_used:
            self._reuse_detected(current, meta)
        raise RevokedTokenError()

    def _reuse_detected(self, record: RefreshToken, meta: SessionMeta):
        """Kill the whole rotation chain, then fail. The revoke is committed first."""
        count = self.revocation.revoke_family(record.family_id)
        logger.warning(
            "refresh token reuse detected: token=%s family=%s user=%s revoked=%d ip=%s user_agent=%s",
            record.id,
            record.family_id,
            record.user_id,
            count,
            meta.ip_address,
            meta.user_agent,
        )
        raise TokenReuseError(family_id=record.family_id)
