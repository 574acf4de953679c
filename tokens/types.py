from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SessionMeta:
    """Request metadata captured at issuance. Shown to users, never used for authorization."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    refresh_token: str
    expires_in: int
    # server side only, never serialized to clients
    family_id: str = field(repr=False)


@dataclass(frozen=True)
class SessionView:
    id: str
    created_at: datetime
    expires_at: datetime
    last_used_at: Optional[datetime]
    ip_address: Optional[str]
    user_agent: Optional[str]
