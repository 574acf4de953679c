"""Periodic purge of dead refresh-token records."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from tokens.store import TokenStore
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class Janitor:
    """
    Deletes every record expired for longer than `retention`.

    Expired records can never be rotated again, so used, revoked and
    abandoned (never rotated) records are all eligible; an unexpired record
    is never touched. A missed sweep only delays cleanup.
    """

    def __init__(
        self,
        store: TokenStore,
        retention: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.retention = retention
        self.clock = clock

    def sweep(self) -> int:
        count = self.store.delete_expired(self.clock() - self.retention)
        logger.info("swept %d expired refresh token(s)", count)
        return count
