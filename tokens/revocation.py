"""
Bulk revocation of refresh tokens.

All operations are idempotent: they only touch rows that are not revoked yet
and return how many rows they revoked (0 on a repeat call or a missing target).
They never look at is_used.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from models.refresh_token import RefreshToken
from tokens.hasher import hash_token
from tokens.store import TokenStore
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class RevocationService:
    def __init__(self, store: TokenStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def revoke_token(self, token_id: str) -> int:
        count = self.store.revoke_where(RefreshToken.id == token_id, now=self.clock())
        if count:
            logger.info("revoked refresh token %s", token_id)
        return count

    def revoke_family(self, family_id: str) -> int:
        """Revoke every member of a rotation chain, past and current."""
        count = self.store.revoke_where(RefreshToken.family_id == family_id, now=self.clock())
        if count:
            logger.info("revoked %d refresh token(s) of family %s", count, family_id)
        return count

    def revoke_all_for_user(self, user_id: str) -> int:
        """Sign out everywhere."""
        count = self.store.revoke_where(RefreshToken.user_id == user_id, now=self.clock())
        logger.info("revoked %d refresh token(s) for user %s", count, user_id)
        return count

    def revoke_by_refresh_token(self, token: str) -> int:
        """Sign out the device holding this bearer secret. Unknown secrets are ignored."""
        return self.store.revoke_where(RefreshToken.token_hash == hash_token(token), now=self.clock())
