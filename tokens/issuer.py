"""Mints the first access/refresh pair of a new rotation family."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from models.refresh_token import RefreshToken
from tokens.errors import UnknownUserError
from tokens.hasher import generate_refresh_secret, hash_token
from tokens.store import TokenStore
from tokens.types import IssuedTokens, SessionMeta
from utils.security import AccessTokenSigner
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class TokenIssuer:
    def __init__(
        self,
        store: TokenStore,
        signer: AccessTokenSigner,
        refresh_ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.signer = signer
        self.refresh_ttl = refresh_ttl
        self.clock = clock

    def new_record(self, user_id: str, family_id: str, meta: SessionMeta, now: datetime):
        """Build (secret, unsaved record) for one refresh token of a family."""
        secret = generate_refresh_secret()
        record = RefreshToken(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token_hash=hash_token(secret),
            family_id=family_id,
            is_used=False,
            is_revoked=False,
            created_at=now,
            updated_at=now,
            expires_at=now + self.refresh_ttl,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )
        return secret, record

    def issue(
        self,
        user_id: str,
        meta: Optional[SessionMeta] = None,
        roles: Optional[Iterable[str]] = None,
    ) -> IssuedTokens:
        """
        Start a new session for user_id.

        One insert and one commit. If the commit fails, PersistenceError is
        raised and no token leaves this method.
        """
        meta = meta or SessionMeta()
        if not self.store.user_exists(user_id):
            raise UnknownUserError()

        now = self.clock()
        family_id = str(uuid.uuid4())
        secret, record = self.new_record(user_id, family_id, meta, now)
        self.store.add(record)
        self.store.commit()

        logger.info("issued refresh token %s (family %s) for user %s", record.id, family_id, user_id)
        return IssuedTokens(
            access_token=self.signer.create(user_id, roles),
            refresh_token=secret,
            expires_in=self.signer.expires_in,
            family_id=family_id,
        )
