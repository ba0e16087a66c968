import pytest
from fastapi.testclient import TestClient

from auth import AuthGate, hash_password
from content_store import ContentStore
from database import MemoryGateway
from errors import TransportError
from feedback import FeedbackAggregator
from main import create_app
from settings_store import SettingsStore

ADMIN_PASSWORD = "secret123"


class FailingGateway(MemoryGateway):
    """MemoryGateway whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail = False
        self.calls = []

    def _check(self, action):
        self.calls.append(action)
        if self.fail:
            raise TransportError(f"Could not {action}. Please try again.")

    def create(self, collection, doc):
        self._check(f"create {collection}")
        return super().create(collection, doc)

    def update(self, collection, item_id, doc):
        self._check(f"update {collection}")
        return super().update(collection, item_id, doc)

    def delete(self, collection, item_id):
        self._check(f"delete {collection}")
        return super().delete(collection, item_id)

    def save_settings(self, doc):
        self._check("save settings")
        return super().save_settings(doc)

    def save_admin(self, doc):
        self._check("save admin")
        return super().save_admin(doc)


class UnreadableGateway(MemoryGateway):
    """MemoryGateway whose named read calls fail."""

    def __init__(self, *broken):
        super().__init__()
        self.broken = set(broken)

    def _check(self, action):
        if action in self.broken:
            raise TransportError(f"Could not {action}. Please try again.")

    def list(self, collection):
        self._check("list")
        return super().list(collection)

    def get_settings(self):
        self._check("get_settings")
        return super().get_settings()

    def get_admin(self):
        self._check("get_admin")
        return super().get_admin()


class Clock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def gateway():
    return FailingGateway()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(gateway, clock):
    return ContentStore(gateway, clock=clock)


@pytest.fixture
def settings_store(gateway):
    return SettingsStore(gateway)


@pytest.fixture
def feedback(store, settings_store):
    return FeedbackAggregator(store, settings_store)


@pytest.fixture(scope="session")
def admin_hash():
    return hash_password(ADMIN_PASSWORD)


@pytest.fixture
def gate(gateway, admin_hash):
    return AuthGate(gateway, password_hash=admin_hash)


@pytest.fixture
def app(gateway, admin_hash):
    return create_app(gateway, auth=AuthGate(gateway, password_hash=admin_hash))


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(client):
    res = client.post("/api/auth/login", json={"password": ADMIN_PASSWORD})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['access_token']}"}
