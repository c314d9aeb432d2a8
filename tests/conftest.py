import re

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notes_app.core.db import Base, build_engine, get_db
from notes_app.core.security import encode_signed, hash_password
from notes_app.main import app
from notes_app.models.user import Password, User
from notes_app.services import sessions
from notes_app.services.providers import GITHUB_PROVIDER_NAME, GitHubProvider, ProviderAuthError, get_provider

PASSWORD = "kodylovesyou"
CODE_RE = re.compile(r"verification code: (\S+)")
# where the cookie jar files host-only cookies for http://testserver
COOKIE_DOMAIN = "testserver.local"


@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, follow_redirects=False)
    app.dependency_overrides.clear()


@pytest.fixture
def csrf(client):
    token = client.get("/csrf").json()["csrfToken"]
    return {"X-CSRF-Token": token}


@pytest.fixture
def outbox(monkeypatch):
    """Captures outgoing emails instead of sending them."""
    sent = []

    def fake_send_email(*, to, subject, text, html=None):
        sent.append({"to": to, "subject": subject, "text": text})
        return True

    for module in ("notes_app.routers.auth", "notes_app.routers.settings", "notes_app.routers.verify"):
        monkeypatch.setattr(f"{module}.send_email", fake_send_email)
    return sent


def code_from(email) -> str:
    return CODE_RE.search(email["text"]).group(1)


@pytest.fixture
def make_user(db):
    def _make(username="kody", email=None, password=PASSWORD, name="Kody"):
        user = User(username=username, email=email or f"{username}@example.com", name=name)
        if password is not None:
            user.password = Password(hash=hash_password(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def authenticate(client, db, user_id):
    """Give ``client`` a session cookie for a fresh session of ``user_id``."""
    session = sessions.create_session(db, user_id)
    client.cookies.set("en_session", encode_signed("session", {"sessionId": session.id}), domain=COOKIE_DOMAIN)
    return session


class FakeProvider(GitHubProvider):
    def __init__(self, profile=None, error=None):
        super().__init__("MOCK_GITHUB_CLIENT_ID", "MOCK_GITHUB_CLIENT_SECRET", "http://testserver")
        self.profile = profile
        self.error = error

    def authenticate(self, code):
        if self.error:
            raise ProviderAuthError(self.error)
        return self.profile


@pytest.fixture
def use_provider():
    def _use(fake):
        def dependency(provider: str):
            if provider != GITHUB_PROVIDER_NAME:
                raise HTTPException(status_code=404, detail="unknown_provider")
            return fake

        app.dependency_overrides[get_provider] = dependency
        return fake

    return _use
