import os
import tempfile

# Point the DB at a temp file so tests don't touch real data
_test_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_test_db.close()

os.environ["ACCOUNTS_DB_PATH"] = _test_db.name
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests-1234567890")
os.environ["MAIL_WEBHOOK_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from accounts import database  # noqa: E402
from accounts.dependencies import get_notifier  # noqa: E402
from accounts.main import app  # noqa: E402

# TestClient only fires lifespan events inside a `with` block
database.init_db()


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    async def send(self, user, reset_token):
        self.sent.append((user.email, reset_token))


@pytest.fixture(autouse=True)
def clean_db():
    """Wipe every table before each test so tests are independent."""
    db = database.get_session()
    db.query(database.DBPasswordResetToken).delete()
    db.query(database.DBUser).delete()
    db.commit()
    db.close()
    yield


@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def client(notifier):
    return TestClient(app)


@pytest.fixture
def register(client):
    def _register(name="Ann", email="a@x.com", password="secret1", confirmation=None):
        return client.post("/register", json={
            "name": name,
            "email": email,
            "password": password,
            "password_confirmation": password if confirmation is None else confirmation,
        })
    return _register
