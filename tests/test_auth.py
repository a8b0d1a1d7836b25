"""Tests for registration and login."""
from datetime import datetime
from urllib.parse import parse_qs, urlsplit

import pytest

from app.classroom import create_app
from app.classroom.db import session_scope
from app.classroom.models import Base, User
from app.classroom.modules.submissions.models import Submission


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add(User(name="Ann", email="ann@x.com"))

    return app.test_client()


def _user_count(client, email):
    with session_scope(client.application) as s:
        return s.query(User).filter(User.email == email).count()


def test_register_new_email(client):
    r = client.post("/register", data={"name": "Bob", "email": "bob@x.com"})
    assert r.status_code == 200
    assert b"Registered successfully" in r.data
    assert _user_count(client, "bob@x.com") == 1


def test_register_twice_reports_already_registered(client):
    client.post("/register", data={"name": "Bob", "email": "bob@x.com"})
    r = client.post("/register", data={"name": "Bobby", "email": "bob@x.com"})
    assert r.status_code == 200
    assert b"User already registered" in r.data
    assert _user_count(client, "bob@x.com") == 1


def test_register_without_email_is_400(client):
    r = client.post("/register", data={"name": "Nobody"})
    assert r.status_code == 400
    assert b"Email is required" in r.data

    r = client.post("/register", data={"name": "Nobody", "email": "   "})
    assert r.status_code == 400


def test_register_accepts_json_and_auth_prefix(client):
    r = client.post("/auth/register", json={"name": "Cy", "email": "cy@x.com"})
    assert r.status_code == 200
    assert b"Registered successfully" in r.data
    with session_scope(client.application) as s:
        user = s.query(User).filter(User.email == "cy@x.com").one()
        assert user.name == "Cy"


def test_register_without_name(client):
    r = client.post("/register", data={"email": "dee@x.com"})
    assert r.status_code == 200
    with session_scope(client.application) as s:
        assert s.query(User).filter(User.email == "dee@x.com").one().name is None


def test_store_rejects_duplicate_email_even_without_precheck(client):
    from app.classroom.users import DuplicateEmailError, create_user

    with pytest.raises(DuplicateEmailError):
        with session_scope(client.application) as s:
            create_user(s, name="Ann again", email="ann@x.com")
    assert _user_count(client, "ann@x.com") == 1


def test_login_without_email_is_400(client):
    r = client.post("/login", data={})
    assert r.status_code == 400
    assert b"Email is required" in r.data


def test_login_unregistered_is_informational(client):
    r = client.post("/login", data={"email": "ghost@x.com"})
    assert r.status_code == 200
    assert b"User has not registered" in r.data


def test_login_without_submissions(client):
    r = client.post("/login", data={"email": "ann@x.com"})
    assert r.status_code == 200
    assert b"no submissions yet" in r.data


def test_login_redirects_to_only_submission(client):
    with session_scope(client.application) as s:
        sub = Submission(name="Ann", email="ann@x.com", message="hi")
        s.add(sub)
        s.flush()
        sub_id = sub.id

    r = client.post("/login", data={"email": "ann@x.com"}, follow_redirects=False)
    assert r.status_code == 302
    loc = urlsplit(r.headers["Location"])
    assert loc.path == f"/profile/{sub_id}"
    assert parse_qs(loc.query) == {"email": ["ann@x.com"]}


def test_login_redirects_to_latest_submission(client):
    with session_scope(client.application) as s:
        older = Submission(name="Ann", email="ann@x.com", message="first", created_at=datetime(2024, 1, 1, 9, 0))
        newest = Submission(name="Ann", email="ann@x.com", message="third", created_at=datetime(2024, 3, 1, 9, 0))
        middle = Submission(name="Ann", email="ann@x.com", message="second", created_at=datetime(2024, 2, 1, 9, 0))
        other = Submission(name="Zed", email="zed@x.com", message="later", created_at=datetime(2025, 1, 1, 9, 0))
        s.add_all([older, newest, middle, other])
        s.flush()
        newest_id = newest.id

    r = client.post("/auth/login", json={"email": "ann@x.com"}, follow_redirects=False)
    assert r.status_code == 302
    assert urlsplit(r.headers["Location"]).path == f"/profile/{newest_id}"


def test_register_race_lost_to_unique_index(client, monkeypatch):
    # Pre-check misses the existing row, as when a concurrent request inserts it first.
    monkeypatch.setattr("app.classroom.auth.find_user_by_email", lambda s, email: None)
    r = client.post("/register", data={"name": "Ann again", "email": "ann@x.com"})
    assert r.status_code == 200
    assert b"User already registered" in r.data
    assert _user_count(client, "ann@x.com") == 1


# ---------- Store failures ----------
def _drop_table(client, model):
    # Warm up first so the schema check has already passed.
    assert client.get("/").status_code == 200
    model.__table__.drop(bind=client.application.extensions["sqlalchemy_engine"])


def test_login_store_failure_is_generic_500(client, caplog):
    _drop_table(client, Submission)
    r = client.post("/login", data={"email": "ann@x.com"})
    assert r.status_code == 500
    assert b"Error during login" in r.data
    assert b"no such table" not in r.data.lower()
    assert "Login failed" in caplog.text


def test_register_store_failure_is_generic_500(client, caplog):
    _drop_table(client, User)
    r = client.post("/register", data={"name": "Bob", "email": "bob@x.com"})
    assert r.status_code == 500
    assert b"Error registering user" in r.data
    assert b"no such table" not in r.data.lower()
    assert "Register failed" in caplog.text
