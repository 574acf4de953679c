#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the session-token service.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- to_dict() that formats timestamps and removes SA internals
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%f"

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models.

    - id, created_at, updated_at
    - to_dict() with __class__ and timestamp formatting

    Persistence goes through DBStorage or TokenStore; models never commit themselves.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        If created_at is passed explicitly (the token core does), it wins over the DB default.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if user passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id}) {self.__dict__}"

    def to_dict(self) -> dict:
        """
        Return a dictionary of fields:
        - Adds __class__
        - Formats datetime values to TIME_FMT
        - Removes SQLAlchemy internal state
        """
        d = {k: v for k, v in self.__dict__.items() if k != "_sa_instance_state"}
        for key, value in d.items():
            if isinstance(value, datetime):
                d[key] = value.strftime(TIME_FMT)
        d["__class__"] = self.__class__.__name__
        return d
