from fastapi import Response
from sqlalchemy.exc import OperationalError

from conftest import COOKIE_DOMAIN

from notes_app.core.db import get_db
from notes_app.main import app
from notes_app.utils.toast import Toast, set_toast


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_toast_is_read_once(client):
    response = Response()
    set_toast(response, Toast(title="Hi", description="Welcome back", type="success"))
    name, value = response.headers["set-cookie"].split(";")[0].split("=", 1)
    client.cookies.set(name, value, domain=COOKIE_DOMAIN)

    assert client.get("/api/toast").json()["toast"] == {"title": "Hi", "description": "Welcome back", "type": "success"}
    assert client.get("/api/toast").json() == {"toast": None}


def test_me_requires_login(client):
    res = client.get("/api/users/me")
    assert res.status_code == 303
    assert res.headers["location"] == "/login?redirectTo=%2Fapi%2Fusers%2Fme"


def test_storage_failure_is_a_generic_500(client):
    class BrokenSession:
        def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is down"))

    app.dependency_overrides[get_db] = lambda: BrokenSession()
    res = client.get("/api/health")
    assert res.status_code == 500
    assert res.json() == {"detail": "internal_error"}
