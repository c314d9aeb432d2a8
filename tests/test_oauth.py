from conftest import FakeProvider, authenticate

from notes_app.models.connection import Connection
from notes_app.models.session import Session as AuthSession
from notes_app.models.user import User
from notes_app.schemas.flow import ProviderProfile
from notes_app.services.connections import create_connection


def _profile(**overrides):
    data = {"id": "42", "email": "a@x.com", "username": "kody_gh", "name": "Kody"}
    data.update(overrides)
    return ProviderProfile(**data)


def _round_trip(client, redirect_to=None):
    body = {"redirectTo": redirect_to} if redirect_to else None
    start = client.post("/auth/github", json=body)
    assert start.status_code == 303
    return client.get(start.headers["location"])


def test_new_identity_goes_to_onboarding(client, db, use_provider):
    use_provider(FakeProvider(_profile()))
    res = _round_trip(client)

    assert res.status_code == 303
    assert res.headers["location"] == "/onboarding/github"
    assert db.query(User).count() == 0
    assert db.query(AuthSession).count() == 0
    assert db.query(Connection).count() == 0
    assert client.get("/onboarding/github").json()["email"] == "a@x.com"


def test_provider_onboarding_creates_user_and_connection(client, csrf, db, use_provider):
    use_provider(FakeProvider(_profile()))
    res = _round_trip(client, redirect_to="/notes")
    assert res.headers["location"] == "/onboarding/github?redirectTo=%2Fnotes"

    res = client.post(
        "/onboarding/github",
        json={
            "username": "kody_gh",
            "name": "Kody",
            "agreeToTermsOfServiceAndPrivacyPolicy": True,
            "redirectTo": "/notes",
        },
        headers=csrf,
    )
    assert res.status_code == 303
    assert res.headers["location"] == "/notes"
    user = db.query(User).one()
    assert user.email == "a@x.com"
    assert user.password is None
    conn = db.query(Connection).one()
    assert (conn.provider_name, conn.provider_id, conn.user_id) == ("github", "42", user.id)
    assert client.get("/api/users/me").json()["id"] == user.id


def test_existing_connection_logs_in(client, db, make_user, use_provider):
    user = make_user()
    create_connection(db, user_id=user.id, provider_name="github", provider_id="42")
    use_provider(FakeProvider(_profile()))

    res = _round_trip(client, redirect_to="/notes")
    assert res.status_code == 303
    assert res.headers["location"] == "/notes"
    assert db.query(AuthSession).filter(AuthSession.user_id == user.id).count() == 1
    assert db.query(Connection).count() == 1
    assert client.get("/api/users/me").json()["id"] == user.id


def test_existing_connection_of_current_user(client, db, make_user, use_provider):
    user = make_user()
    create_connection(db, user_id=user.id, provider_name="github", provider_id="42")
    authenticate(client, db, user.id)
    use_provider(FakeProvider(_profile()))

    res = _round_trip(client)
    assert res.headers["location"] == "/settings/profile/connections"
    assert db.query(Connection).count() == 1
    assert "already connected" in client.get("/api/toast").json()["toast"]["description"]


def test_connection_owned_by_someone_else(client, db, make_user, use_provider):
    owner = make_user(username="owner")
    other = make_user(username="other")
    create_connection(db, user_id=owner.id, provider_name="github", provider_id="42")
    authenticate(client, db, other.id)
    use_provider(FakeProvider(_profile()))

    res = _round_trip(client)
    assert res.status_code == 303
    assert res.headers["location"] == "/settings/profile/connections"
    toast = client.get("/api/toast").json()["toast"]
    assert toast["type"] == "error"
    assert "another account" in toast["description"]
    conn = db.query(Connection).one()
    assert conn.user_id == owner.id


def test_logged_in_user_links_new_identity(client, db, make_user, use_provider):
    user = make_user()
    authenticate(client, db, user.id)
    use_provider(FakeProvider(_profile()))

    res = _round_trip(client)
    assert res.headers["location"] == "/settings/profile/connections"
    conn = db.query(Connection).one()
    assert conn.user_id == user.id


def test_matching_email_links_and_logs_in(client, db, make_user, use_provider):
    user = make_user(email="a@x.com")
    use_provider(FakeProvider(_profile(email="A@X.com")))

    res = _round_trip(client)
    assert res.status_code == 303
    assert res.headers["location"] == "/settings/profile/connections"
    assert db.query(Connection).one().user_id == user.id
    assert client.get("/api/users/me").json()["id"] == user.id


def test_provider_failure(client, db, use_provider):
    use_provider(FakeProvider(error="bad code"))

    res = _round_trip(client, redirect_to="/notes")
    assert res.status_code == 303
    assert res.headers["location"] == "/login"
    assert "redirectTo" not in client.cookies
    assert "en_connection" not in client.cookies
    assert client.get("/api/toast").json()["toast"]["title"] == "Auth Failed"
    assert db.query(User).count() == 0


def test_state_mismatch_is_a_failure(client, db, use_provider):
    use_provider(FakeProvider(_profile()))
    client.post("/auth/github")
    res = client.get("/auth/github/callback?code=MOCK_GITHUB_CODE_KODY&state=forged")
    assert res.headers["location"] == "/login"
    assert db.query(User).count() == 0


def test_unknown_provider(client):
    assert client.post("/auth/gitlab").status_code == 404


def test_mock_github_provider(client, db):
    res = _round_trip(client)
    assert res.headers["location"] == "/onboarding/github"
    assert client.get("/onboarding/github").json()["email"] == "kody@kcd.dev"
