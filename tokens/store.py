"""
Data access for refresh-token records.

Every check-then-set on a flag is a single conditional UPDATE whose affected
row count decides who won; nothing here reads a row and writes it back.
Database failures surface as PersistenceError after the session is rolled back.
"""
from __future__ import annotations

from datetime import datetime
from functools import wraps
import logging
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.refresh_token import RefreshToken
from models.user import User
from tokens.errors import PersistenceError

logger = logging.getLogger(__name__)


def _guarded(fn):
    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("token store failure in %s: %s", fn.__name__, exc.__class__.__name__)
            self.session.rollback()
            raise PersistenceError() from exc

    return wrapper


class TokenStore:
    """Owns the refresh_tokens table on top of a DBStorage."""

    def __init__(self, storage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    # transaction control

    @_guarded
    def add(self, record: RefreshToken) -> RefreshToken:
        self.session.add(record)
        self.session.flush()
        return record

    @_guarded
    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    # lookups

    @_guarded
    def find_by_hash(self, token_hash: str) -> Optional[RefreshToken]:
        return self.session.execute(
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @_guarded
    def get(self, token_id: str) -> Optional[RefreshToken]:
        return self.session.execute(
            select(RefreshToken)
            .where(RefreshToken.id == token_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @_guarded
    def user_exists(self, user_id: str) -> bool:
        return self.session.get(User, user_id) is not None

    @_guarded
    def list_unrevoked_for_user(self, user_id: str) -> List[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked == False)  # noqa: E712
            .order_by(RefreshToken.created_at)
            .execution_options(populate_existing=True)
        )
        return list(self.session.execute(stmt).scalars())

    @_guarded
    def list_family(self, family_id: str) -> List[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.family_id == family_id)
            .order_by(RefreshToken.created_at)
            .execution_options(populate_existing=True)
        )
        return list(self.session.execute(stmt).scalars())

    # atomic transitions

    @_guarded
    def mark_used(self, token_id: str, successor_id: str, now: datetime) -> bool:
        """
        ACTIVE -> USED. Returns True only for the single caller whose UPDATE
        matched the still-unused, unrevoked row. Not committed here.
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.id == token_id,
                RefreshToken.is_used == False,  # noqa: E712
                RefreshToken.is_revoked == False,  # noqa: E712
            )
            .values(is_used=True, used_at=now, replaced_by=successor_id)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    @_guarded
    def revoke_where(self, *criteria, now: datetime) -> int:
        """Set is_revoked on every matching row not already revoked; commits."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.is_revoked == False, *criteria)  # noqa: E712
            .values(is_revoked=True, revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        count = self.session.execute(stmt).rowcount
        self.session.commit()
        self.session.expire_all()
        return count

    @_guarded
    def delete_expired(self, cutoff: datetime) -> int:
        """Hard delete of records whose expiry is at or before cutoff; commits."""
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        count = self.session.execute(stmt).rowcount
        self.session.commit()
        self.session.expire_all()
        return count

    @_guarded
    def user_roles(self, user_id: str) -> List[str]:
        user = self.session.get(User, user_id)
        return list(getattr(user, "roles", None) or [])
