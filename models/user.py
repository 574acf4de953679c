from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, JSON, UniqueConstraint
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    """Account linked to an external identity provider (google, apple, ...)."""
    __tablename__ = "users"

    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    avatar = Column(String(1024), nullable=True)
    provider = Column(String(32), nullable=False)
    provider_id = Column(String(255), nullable=False)
    roles = Column(JSON, nullable=True, default=lambda: ["user"])

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
    )
