from conftest import PASSWORD, code_from

from notes_app.models.session import Session as AuthSession
from notes_app.models.user import User
from notes_app.services import sessions, verification


def _login(client, csrf, **overrides):
    body = {"username": "kody", "password": PASSWORD, **overrides}
    return client.post("/login", json=body, headers=csrf)


def test_form_actions_require_csrf(client, make_user):
    make_user()
    res = client.post("/login", json={"username": "kody", "password": PASSWORD})
    assert res.status_code == 403
    assert res.json()["detail"] == "invalid_csrf_token"

    client.get("/csrf")
    res = client.post("/login", json={"username": "kody", "password": PASSWORD}, headers={"X-CSRF-Token": "nope"})
    assert res.status_code == 403


def test_csrf_token_is_bound_to_its_cookie(client, make_user):
    make_user()
    token = client.get("/csrf").json()["csrfToken"]
    signed = client.cookies["csrf"]
    assert signed != token

    client.cookies.clear()
    res = client.post("/login", json={"username": "kody", "password": PASSWORD}, headers={"X-CSRF-Token": token})
    assert res.status_code == 403

    client.get("/csrf")
    res = client.post("/login", json={"username": "kody", "password": PASSWORD}, headers={"X-CSRF-Token": token})
    assert res.status_code == 403
    assert res.json()["detail"] == "invalid_csrf_token"


def test_login_sets_session_cookie(client, csrf, db, make_user):
    make_user()
    res = _login(client, csrf, redirectTo="/notes")
    assert res.status_code == 303
    assert res.headers["location"] == "/notes"
    assert "en_session" in client.cookies
    assert db.query(AuthSession).count() == 1
    assert client.get("/api/users/me").json()["username"] == "kody"


def test_remember_me_controls_cookie_expiry(client, csrf, make_user):
    make_user()
    res = _login(client, csrf)
    assert "expires=" not in res.headers["set-cookie"].lower()

    client.post("/logout")
    res = _login(client, csrf, remember=True)
    assert "expires=" in res.headers["set-cookie"].lower()


def test_login_errors_do_not_leak_which_part_was_wrong(client, csrf, make_user):
    make_user()
    wrong_password = _login(client, csrf, password="not-my-password")
    unknown_user = _login(client, csrf, username="nobody")
    assert wrong_password.status_code == unknown_user.status_code == 400
    assert wrong_password.json() == unknown_user.json()
    assert "en_session" not in client.cookies


def test_login_ignores_offsite_redirect(client, csrf, make_user):
    make_user()
    res = _login(client, csrf, redirectTo="https://evil.com")
    assert res.headers["location"] == "/"


def test_login_form_validation(client, csrf):
    res = client.post("/login", json={"username": "k!", "password": "x"}, headers=csrf)
    assert res.status_code == 400
    errors = res.json()["errors"]
    assert "username" in errors
    assert "password" in errors


def test_logged_in_user_cannot_log_in_again(client, csrf, make_user):
    make_user()
    _login(client, csrf)
    res = _login(client, csrf)
    assert res.status_code == 303
    assert res.headers["location"] == "/"


def test_logout(client, csrf, db, make_user):
    make_user()
    _login(client, csrf)
    res = client.post("/logout")
    assert res.status_code == 303
    assert res.headers["location"] == "/"
    assert "en_session" not in client.cookies
    assert db.query(AuthSession).count() == 0


def test_signup_onboarding_flow(client, csrf, db, outbox):
    res = client.post("/signup", json={"email": "Kody@Example.com", "redirectTo": "/notes"}, headers=csrf)
    assert res.status_code == 303
    assert res.headers["location"].startswith("/verify?type=onboarding&target=kody%40example.com")
    assert outbox[0]["to"] == "kody@example.com"

    res = client.post(
        "/verify",
        json={"type": "onboarding", "target": "kody@example.com", "code": code_from(outbox[0]), "redirectTo": "/notes"},
        headers=csrf,
    )
    assert res.status_code == 303
    assert res.headers["location"] == "/onboarding?redirectTo=%2Fnotes"
    assert client.get("/onboarding").json() == {"email": "kody@example.com"}
    # the code is gone once used
    assert verification.get_verification(db, type="onboarding", target="kody@example.com") is None

    res = client.post(
        "/onboarding",
        json={
            "username": "Kody",
            "name": "Kody Koala",
            "password": PASSWORD,
            "confirmPassword": PASSWORD,
            "agreeToTermsOfServiceAndPrivacyPolicy": True,
            "redirectTo": "/notes",
        },
        headers=csrf,
    )
    assert res.status_code == 303
    assert res.headers["location"] == "/notes"
    user = db.query(User).one()
    assert user.username == "kody"
    assert user.email == "kody@example.com"
    assert user.password is not None
    assert client.get("/api/users/me").json()["email"] == "kody@example.com"


def test_emailed_link_verifies_without_typing(client, csrf, outbox):
    client.post("/signup", json={"email": "kody@example.com"}, headers=csrf)
    link = outbox[0]["text"].split("Or open this link: ")[1]
    res = client.get(link)
    assert res.status_code == 303
    assert res.headers["location"] == "/onboarding"


def test_verify_rejects_wrong_code(client, csrf, outbox):
    client.post("/signup", json={"email": "kody@example.com"}, headers=csrf)
    code = code_from(outbox[0])
    wrong = "000000" if code != "000000" else "111111"
    res = client.post("/verify", json={"type": "onboarding", "target": "kody@example.com", "code": wrong}, headers=csrf)
    assert res.status_code == 400
    assert res.json()["errors"] == {"code": ["Invalid code"]}


def test_verify_rejects_unknown_type(client, csrf):
    res = client.post("/verify", json={"type": "2fa-verify", "target": "x", "code": "123456"}, headers=csrf)
    assert res.status_code == 400
    assert "type" in res.json()["errors"]


def test_signup_rejects_existing_email(client, csrf, make_user, outbox):
    make_user(email="kody@example.com")
    res = client.post("/signup", json={"email": "kody@example.com"}, headers=csrf)
    assert res.status_code == 400
    assert "email" in res.json()["errors"]
    assert outbox == []


def test_onboarding_rejects_mismatched_passwords(client, csrf, outbox):
    client.post("/signup", json={"email": "kody@example.com"}, headers=csrf)
    client.post(
        "/verify",
        json={"type": "onboarding", "target": "kody@example.com", "code": code_from(outbox[0])},
        headers=csrf,
    )
    res = client.post(
        "/onboarding",
        json={
            "username": "kody",
            "name": "Kody",
            "password": PASSWORD,
            "confirmPassword": PASSWORD + "x",
            "agreeToTermsOfServiceAndPrivacyPolicy": True,
        },
        headers=csrf,
    )
    assert res.status_code == 400
    assert res.json()["errors"][""] == ["The passwords must match"]


def test_onboarding_without_verified_email(client, csrf):
    res = client.get("/onboarding")
    assert res.status_code == 303
    assert res.headers["location"] == "/signup"


def test_password_reset_flow(client, csrf, db, make_user, outbox):
    make_user()
    res = client.post("/forgot-password", json={"usernameOrEmail": "kody"}, headers=csrf)
    assert res.status_code == 303
    assert outbox[0]["to"] == "kody@example.com"

    res = client.post(
        "/verify",
        json={"type": "reset-password", "target": "kody", "code": code_from(outbox[0])},
        headers=csrf,
    )
    assert res.headers["location"] == "/reset-password"
    assert client.get("/reset-password").json() == {"username": "kody"}

    res = client.post(
        "/reset-password",
        json={"password": "newpassword", "confirmPassword": "newpassword"},
        headers=csrf,
    )
    assert res.headers["location"] == "/login"
    assert client.get("/reset-password").headers["location"] == "/login"

    assert _login(client, csrf, password=PASSWORD).status_code == 400
    assert _login(client, csrf, password="newpassword").status_code == 303


def test_forgot_password_unknown_user(client, csrf, outbox):
    res = client.post("/forgot-password", json={"usernameOrEmail": "nobody@example.com"}, headers=csrf)
    assert res.status_code == 400
    assert "usernameOrEmail" in res.json()["errors"]
    assert outbox == []


def _onboarding_body(username="kody"):
    return {
        "username": username,
        "name": "Kody",
        "password": PASSWORD,
        "confirmPassword": PASSWORD,
        "agreeToTermsOfServiceAndPrivacyPolicy": True,
    }


def test_onboarding_code_cannot_be_replayed(client, csrf, outbox):
    client.post("/signup", json={"email": "kody@example.com"}, headers=csrf)
    body = {"type": "onboarding", "target": "kody@example.com", "code": code_from(outbox[0])}
    assert client.post("/verify", json=body, headers=csrf).status_code == 303

    res = client.post("/verify", json=body, headers=csrf)
    assert res.status_code == 400
    assert res.json()["errors"] == {"code": ["Invalid code"]}


def test_onboarding_rejects_email_taken_after_verify(client, csrf, db, make_user, outbox):
    client.post("/signup", json={"email": "kody@example.com"}, headers=csrf)
    client.post(
        "/verify",
        json={"type": "onboarding", "target": "kody@example.com", "code": code_from(outbox[0])},
        headers=csrf,
    )
    make_user(username="other", email="kody@example.com")

    res = client.post("/onboarding", json=_onboarding_body(), headers=csrf)
    assert res.status_code == 400
    assert res.json()["errors"] == {"": ["A user already exists with this email"]}
    assert db.query(User).count() == 1
    assert "en_session" not in client.cookies


def test_verify_rejects_email_taken_after_signup(client, csrf, make_user, outbox):
    client.post("/signup", json={"email": "kody@example.com"}, headers=csrf)
    make_user(username="other", email="kody@example.com")

    res = client.post(
        "/verify",
        json={"type": "onboarding", "target": "kody@example.com", "code": code_from(outbox[0])},
        headers=csrf,
    )
    assert res.status_code == 400
    assert res.json()["errors"] == {"": ["A user already exists with this email"]}
    assert client.get("/onboarding").headers["location"] == "/signup"


def test_reset_password_for_deleted_account(client, csrf, db, make_user, outbox):
    user = make_user()
    client.post("/forgot-password", json={"usernameOrEmail": "kody"}, headers=csrf)
    client.post(
        "/verify",
        json={"type": "reset-password", "target": "kody", "code": code_from(outbox[0])},
        headers=csrf,
    )
    sessions.delete_user(db, user.id)

    res = client.post(
        "/reset-password",
        json={"password": "newpassword", "confirmPassword": "newpassword"},
        headers=csrf,
    )
    assert res.status_code == 303
    assert res.headers["location"] == "/login"
    assert client.get("/reset-password").headers["location"] == "/login"
    assert db.query(User).count() == 0
