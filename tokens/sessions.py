"""
Read side of the token store: what a user sees as "signed-in devices".

One row per rotation family. The row shows the chain tip (the unrevoked
record that has not been rotated yet); families whose tip is expired or
missing are not active sessions and are left out.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Callable, List

from models.refresh_token import RefreshToken
from tokens.errors import SessionNotFoundError
from tokens.revocation import RevocationService
from tokens.store import TokenStore
from tokens.types import SessionView
from utils.timeutils import utcnow


class SessionReporter:
    def __init__(
        self,
        store: TokenStore,
        revocation: RevocationService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.revocation = revocation
        self.clock = clock

    def list_sessions(self, user_id: str) -> List[SessionView]:
        now = self.clock()
        families = defaultdict(list)
        for record in self.store.list_unrevoked_for_user(user_id):
            families[record.family_id].append(record)

        views = []
        for records in families.values():
            tips = [r for r in records if not r.is_used]
            if not tips:
                continue
            tip = tips[-1]
            if tip.is_expired(now):
                continue
            used_at = [r.used_at for r in records if r.used_at is not None]
            views.append(
                SessionView(
                    id=tip.id,
                    created_at=records[0].created_at,
                    expires_at=tip.expires_at,
                    last_used_at=max(used_at) if used_at else None,
                    ip_address=tip.ip_address,
                    user_agent=tip.user_agent,
                )
            )
        views.sort(key=lambda v: v.created_at, reverse=True)
        return views

    def revoke_session(self, user_id: str, token_id: str) -> int:
        """
        Sign one device out: revokes the whole family of the given record, so an
        id listed before the device rotated still ends the session.
        Other users' ids look missing.
        """
        record = self.store.get(token_id)
        if record is None or record.user_id != user_id:
            raise SessionNotFoundError()
        return self.revocation.revoke_family(record.family_id)

    def family_chain(self, family_id: str) -> List[RefreshToken]:
        """Family records in rotation order, following replaced_by from the root."""
        records = self.store.list_family(family_id)
        by_id = {r.id: r for r in records}
        successors = {r.replaced_by for r in records if r.replaced_by}
        roots = [r for r in records if r.id not in successors]
        if not roots:
            return []

        chain = []
        seen = set()
        current = roots[0]
        while current is not None and current.id not in seen:
            chain.append(current)
            seen.add(current.id)
            current = by_id.get(current.replaced_by)
        return chain
