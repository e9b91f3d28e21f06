import logging

import pytest
from fastapi.testclient import TestClient

from shopauth.app import create_app


@pytest.fixture()
def client(settings, service):
    return TestClient(create_app(settings, service=service))


def _signup(client, email="a@x.com", password="p1", confirm="p1"):
    return client.post(
        "/signup",
        data={"email": email, "password": password, "confirmPassword": confirm},
        follow_redirects=False,
    )


def _login(client, email="a@x.com", password="p1"):
    return client.post("/login", data={"email": email, "password": password}, follow_redirects=False)


def test_pages_render(client):
    for path in ("/", "/login", "/signup", "/reset"):
        r = client.get(path)
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/html")


def test_signup_login_logout(client, settings, notifier):
    r = _signup(client)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
    assert notifier.sent[0].subject == "Signup succeeded!"

    r = _login(client)
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert settings.cookie_name in r.cookies

    r = client.get("/account")
    assert r.status_code == 200
    assert "a@x.com" in r.text

    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert settings.cookie_name not in client.cookies

    r = client.get("/account", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login?next=/account"


def test_logout_without_session(client):
    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 303


def test_duplicate_signup_shows_message(client):
    _signup(client)
    r = _signup(client)
    assert r.headers["location"] == "/signup"
    page = client.get("/signup")
    assert "E-mail exists already" in page.text
    # flash is read once
    assert "E-mail exists already" not in client.get("/signup").text


def test_login_messages_distinguish_missing_account(client, settings):
    _signup(client)
    r = _login(client, email="nobody@x.com")
    assert r.headers["location"] == "/login"
    assert "invalid email!" in client.get("/login").text

    r = _login(client, password="wrong")
    assert r.headers["location"] == "/login"
    assert settings.cookie_name not in r.cookies
    assert "invalid password!" in client.get("/login").text


def test_reset_flow(client, notifier, clock):
    _signup(client)

    r = client.post("/reset", data={"email": "nobody@x.com"}, follow_redirects=False)
    assert r.headers["location"] == "/reset"
    assert "No account found with this email!" in client.get("/reset").text

    r = client.post("/reset", data={"email": "a@x.com"}, follow_redirects=False)
    assert r.headers["location"] == "/"
    mail = notifier.sent[-1]
    assert mail.subject == "Password Reset"
    link = mail.html.split('href="')[1].split('"')[0]
    assert link.startswith("https://shop.example/reset/")
    token = link.rsplit("/", 1)[1]

    page = client.get(f"/reset/{token}")
    assert page.status_code == 200
    assert f'value="{token}"' in page.text
    user_id = page.text.split('name="userId" value="')[1].split('"')[0]

    form = {"userId": user_id, "passwordToken": token, "password": "p2", "confirmPassword": "nope"}
    r = client.post("/new-password", data=form, follow_redirects=False)
    assert r.headers["location"] == f"/reset/{token}"
    assert "Passwords do not match!" in client.get(f"/reset/{token}").text

    form["confirmPassword"] = "p2"
    r = client.post("/new-password", data=form, follow_redirects=False)
    assert r.headers["location"] == "/login"

    r = client.post("/new-password", data=form, follow_redirects=False)
    assert r.headers["location"] == "/reset"
    assert "Token is invalid, or has expired." in client.get("/reset").text

    assert _login(client, password="p1").headers["location"] == "/login"
    assert _login(client, password="p2").headers["location"] == "/"


def test_expired_reset_link_redirects(client, notifier, clock):
    _signup(client)
    client.post("/reset", data={"email": "a@x.com"}, follow_redirects=False)
    token = notifier.sent[-1].html.split("/reset/")[1].split('"')[0]

    clock.advance(minutes=61)
    r = client.get(f"/reset/{token}", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/reset"


def test_store_failure_redirects_without_message(client, settings):
    settings.users_path.parent.mkdir(parents=True, exist_ok=True)
    settings.users_path.write_text("users: [unclosed", encoding="utf-8")
    r = _login(client)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
    assert settings.flash_cookie_name not in r.cookies


def test_login_next_is_local_only(client):
    _signup(client)
    r = client.post(
        "/login",
        data={"email": "a@x.com", "password": "p1", "next": "https://evil.example/"},
        follow_redirects=False,
    )
    assert r.headers["location"] == "/"


def test_unreadable_store_renders_anonymous_and_logs(client, settings, caplog):
    _signup(client)
    _login(client)
    settings.users_path.write_text("users: [unclosed", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="shopauth.permissions"):
        r = client.get("/")
    assert r.status_code == 200
    assert "Log in" in r.text
    assert "Store unavailable" in caplog.text
