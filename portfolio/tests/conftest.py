import uuid

import pytest

from portfolio import create_app
from portfolio.routes import public as public_routes

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-test-pass-123"


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class AdminSession:
    """Test client wrapper that sends the CSRF header on mutating requests."""

    def __init__(self, client, csrf_token):
        self.client = client
        self.csrf_token = csrf_token

    def _headers(self, headers=None):
        merged = {"X-CSRF-Token": self.csrf_token}
        merged.update(headers or {})
        return merged

    def get(self, path, **kwargs):
        return self.client.get(path, **kwargs)

    def post(self, path, headers=None, **kwargs):
        return self.client.post(path, headers=self._headers(headers), **kwargs)

    def put(self, path, headers=None, **kwargs):
        return self.client.put(path, headers=self._headers(headers), **kwargs)

    def delete(self, path, headers=None, **kwargs):
        return self.client.delete(path, headers=self._headers(headers), **kwargs)


def build_test_app(tmp_path, monkeypatch, overrides=None):
    db_path = tmp_path / f"portfolio_test_{uuid.uuid4().hex[:8]}.db"
    upload_path = tmp_path / f"uploads_{uuid.uuid4().hex[:8]}"

    # Keep tests off the network; individual tests patch this again when needed.
    monkeypatch.setattr(public_routes, "send_contact_notification", lambda message: False)

    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "SQLALCHEMY_ENGINE_OPTIONS": {},
        "UPLOAD_FOLDER": str(upload_path),
        "ADMIN_USERNAME": ADMIN_USERNAME,
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
        "SESSION_COOKIE_SECURE": False,
        "TRUST_PROXY_HEADERS": False,
        "CSRF_ENABLED": True,
        "SENTRY_DSN": "",
        "LOG_JSON": False,
        "CONTACT_NOTIFICATION_EMAILS": "",
        "MAILGUN_API_KEY": "",
        "SMTP_HOST": "",
        "PROFILE_CACHE_CLOCK": FakeClock(),
        "DB_RETRY_SLEEP": lambda seconds: None,
    }
    if overrides:
        config.update(overrides)
    return create_app(config)


def login(client, username=ADMIN_USERNAME, password=ADMIN_PASSWORD):
    return client.post("/admin/login", json={"username": username, "password": password})


@pytest.fixture()
def app(tmp_path, monkeypatch):
    return build_test_app(tmp_path, monkeypatch)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin(client):
    response = login(client)
    assert response.status_code == 200
    return AdminSession(client, response.get_json()["csrfToken"])


@pytest.fixture()
def clock(app):
    return app.config["PROFILE_CACHE_CLOCK"]
