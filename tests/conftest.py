import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add the parent directory to the path so we can import launchpad modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from launchpad.core.config import Settings  # noqa: E402
from launchpad.core.security import SessionIssuer  # noqa: E402
from launchpad.db.base import Base  # noqa: E402
from launchpad.main import create_app  # noqa: E402
from launchpad.models import user  # noqa: E402,F401  ensure models are imported
from launchpad.services.nonce_store import InMemoryNonceStore  # noqa: E402

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
ALICE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe512961708279f8d5e7f5e8b2e4e8b7"
BOB_KEY = "0x5c0883a69102937d6231471b5dbb6204fe512961708279f8d5e7f5e8b2e4e8b8"


class FakeClock:
    """Callable clock tests can move forward."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def sign(account, message: str) -> str:
    """personal_sign the way a browser wallet does (v = 27/28)."""
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def alice():
    return Account.from_key(ALICE_KEY)


@pytest.fixture
def bob():
    return Account.from_key(BOB_KEY)


@pytest.fixture
def nonce_store(clock):
    return InMemoryNonceStore(now=clock)


@pytest.fixture
def issuer(clock):
    return SessionIssuer(TEST_SECRET, now=clock)


@pytest.fixture()
def db():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True, poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings(_env_file=None, jwt_secret=TEST_SECRET, database_url="sqlite://", nonce_backend="memory")


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sign_message():
    return sign


@pytest.fixture
def secret():
    return TEST_SECRET
