"""
Shared fixtures.

Store-level tests run against both backends (in-memory and SQLAlchemy on
an in-memory SQLite database). API tests run the FastAPI app on the
in-memory store with the websocket manager and the LLM extractor
swapped out through dependency_overrides.
"""

import os

# must be set before cardvault.core.config is imported
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("AUTH_SHARED_SECRET", "test-idp-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cardvault.core.identity import sign_identity
from cardvault.database_init import create_tables
from cardvault.deps import get_broadcaster, get_extractor, get_storage
from cardvault.main import app
from cardvault.schemas.card import CardCreate
from cardvault.schemas.user import UserUpsert
from cardvault.services.broadcast import ConnectionManager
from cardvault.storage.memory import MemoryStorage
from cardvault.storage.sql import SqlStorage


# =========================
# FAKES
# =========================
class FakeExtractor:
    """Stands in for LLMExtractor; answers are set by the test."""

    def __init__(self, transaction=None, analyses=None):
        self.transaction = transaction
        self.analyses = analyses or {}
        self.sms_seen = []

    async def extract_transaction(self, sms_text):
        self.sms_seen.append(sms_text)
        return self.transaction

    async def analyze_email(self, subject, body):
        return self.analyses.get(subject)


class FakeWebSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.fail = fail
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(message)


class RecordingBroadcaster(ConnectionManager):
    """ConnectionManager that also remembers everything it was asked to push."""

    def __init__(self):
        super().__init__()
        self.pushed = []

    async def broadcast(self, notification, user_id):
        self.pushed.append((user_id, notification))
        return await super().broadcast(notification, user_id)


# =========================
# STORE FIXTURES
# =========================
@pytest.fixture(params=["memory", "sql"])
def storage(request):
    if request.param == "memory":
        yield MemoryStorage()
        return

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield SqlStorage(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    engine.dispose()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


async def make_user(storage, external_id, **fields):
    return await storage.upsert_user(UserUpsert(external_id=external_id, **fields))


async def make_card(storage, user_id, last_four="1234", name="Amazon Pay ICICI", limit="100000"):
    return await storage.create_card(user_id, CardCreate(
        card_name=name,
        bank_name="ICICI",
        last_four_digits=last_four,
        card_network="visa",
        credit_limit=limit,
    ))


# =========================
# API FIXTURES
# =========================
@pytest.fixture
def app_storage():
    return MemoryStorage()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def client(app_storage, broadcaster, extractor):
    app.dependency_overrides[get_storage] = lambda: app_storage
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    app.dependency_overrides[get_extractor] = lambda: extractor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def login(client, external_id, **claims):
    """Log in through /auth/login and return the bearer token."""
    init_data = sign_identity({"id": external_id, **claims})
    response = client.post("/auth/login", json={"init_data": init_data})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.fixture
def alice_token(client):
    return login(client, "alice-001", first_name="Alice", email="alice@example.com")


@pytest.fixture
def bob_token(client):
    return login(client, "bob-002", first_name="Bob")


@pytest.fixture
def alice(alice_token):
    return {"Authorization": f"Bearer {alice_token}"}


@pytest.fixture
def bob(bob_token):
    return {"Authorization": f"Bearer {bob_token}"}


CARD_PAYLOAD = {
    "cardName": "Amazon Pay ICICI",
    "bankName": "ICICI",
    "lastFourDigits": "1234",
    "cardNetwork": "visa",
    "creditLimit": "100000",
}


def create_card(client, headers, **overrides):
    response = client.post("/api/cards", json={**CARD_PAYLOAD, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()
