"""
RefreshToken model: one row per refresh secret ever handed to a client.

Fields:
- token_hash: SHA-256 of the bearer secret (the raw secret is never stored)
- family_id: shared by every token rotated from the same sign-in
- is_used / used_at / replaced_by: set together, once, when the token is rotated
- is_revoked / revoked_at: set by revocation or by reuse detection
- expires_at, ip_address, user_agent
"""
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    # Immutable once set; the partition key of a rotation chain
    family_id = Column(String(36), nullable=False, index=True)

    is_used = Column(Boolean, default=False, nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)
    # Forward pointer to the successor; SET NULL when the janitor deletes it
    replaced_by = Column(String(36), ForeignKey("refresh_tokens.id", ondelete="SET NULL"), nullable=True)

    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        CheckConstraint("(NOT is_used) OR (used_at IS NOT NULL)", name="ck_refresh_tokens_used_at"),
        CheckConstraint("(NOT is_revoked) OR (revoked_at IS NOT NULL)", name="ck_refresh_tokens_revoked_at"),
        Index("ix_refresh_tokens_user_revoked", "user_id", "is_revoked"),
    )

    def is_expired(self, now) -> bool:
        return self.expires_at <= now

    def __repr__(self):
        return f"<RefreshToken id={self.id} family={self.family_id} used={self.is_used} revoked={self.is_revoked}>"
