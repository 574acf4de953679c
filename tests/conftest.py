import os
import sys
from datetime import timedelta
from pathlib import Path

# Configure the global storage before anything imports `models`
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-0123456789")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models import storage as global_storage  # noqa: E402
from models.user import User  # noqa: E402
from tokens import TokenService  # noqa: E402
from utils.identity import ExternalIdentity, IdentityVerificationError, IdentityVerifier  # noqa: E402
from utils.security import AccessTokenSigner  # noqa: E402
from utils.timeutils import utcnow  # noqa: E402

TEST_JWT_SECRET = "test-secret-key-for-testing-only-0123456789"


class FakeClock:
    """Settable clock, starting at the real time."""

    def __init__(self, start=None):
        self.now = (start or utcnow()).replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeVerifier(IdentityVerifier):
    """Accepts credentials of the form "good:<provider_id>:<email>"."""

    def verify(self, provider, credential):
        parts = credential.split(":")
        if len(parts) != 3 or parts[0] != "good":
            raise IdentityVerificationError("bad credential")
        return ExternalIdentity(
            provider=provider,
            provider_id=parts[1],
            email=parts[2],
            name="Test User",
        )


def make_user(storage, email="user@example.com", provider_id=None, roles=None):
    user = User(
        email=email,
        name="Test User",
        provider="google",
        provider_id=provider_id or email,
        roles=roles or ["user"],
    )
    storage.new(user)
    storage.save()
    return user


@pytest.fixture
def db():
    global_storage.drop_all()
    global_storage.reload()
    yield global_storage
    global_storage.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signer(clock):
    return AccessTokenSigner(
        secret=TEST_JWT_SECRET,
        expires=timedelta(minutes=15),
        issuer="session-token-service",
        clock=clock,
    )


@pytest.fixture
def service(db, signer, clock):
    return TokenService(db, signer, refresh_ttl=timedelta(days=7), clock=clock)


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def app(db, clock):
    from api import create_app

    app = create_app("test", identity_verifier=FakeVerifier(), clock=clock)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
