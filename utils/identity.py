"""
External identity collaborator.

The OAuth layer (Google, Apple, ...) lives outside this service. Whatever
verifies a provider credential is plugged in as an IdentityVerifier and the
token core trusts its answer completely.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class IdentityVerificationError(Exception):
    """The provider rejected the credential."""


@dataclass(frozen=True)
class ExternalIdentity:
    provider: str
    provider_id: str
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None


class IdentityVerifier:
    """Interface for provider verification."""

    def verify(self, provider: str, credential: str) -> ExternalIdentity:
        raise NotImplementedError
