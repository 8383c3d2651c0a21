from __future__ import annotations

import sys
import uuid
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session as OrmSession


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from main import app  # noqa: E402
from config import settings  # noqa: E402
from db.database import SessionLocal  # noqa: E402
from db.models import DailyLog  # noqa: E402
from services.recipe_service import seed_recipes  # noqa: E402


PASSWORD = "Str0ng!Pw"


def _username(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def _register(client: TestClient, username: str, display_name: str = "Test User", password: str = PASSWORD):
    return client.post(
        "/auth/register",
        json={"username": username, "display_name": display_name, "password": password},
    )


def test_end_to_end_register_checkin_and_dashboard():
    client = TestClient(app)
    alice = _username("alice")

    register = _register(client, alice, "Alice A")
    assert register.status_code == 201
    body = register.json()
    assert body["user"]["username"] == alice
    assert body["user"]["display_name"] == "Alice A"
    assert body["redirect_to"] == "/"
    set_cookie = register.headers.get("set-cookie", "").lower()
    assert f"{settings.SESSION_COOKIE_NAME}=" in set_cookie
    assert "httponly" in set_cookie
    user_id = body["user"]["user_id"]

    wrong = TestClient(app).post("/auth/login", json={"username": alice, "password": "wrongpw"})
    assert wrong.status_code == 401
    assert wrong.json() == {"detail": "Invalid credentials"}

    first = client.post("/daily-check-in", json={"log_date": "2024-01-01", "sleep_hours": 7})
    assert first.status_code == 200
    assert first.json()["status"] == "saved"
    assert first.json()["created"] is True
    log_id = first.json()["log"]["id"]

    second = client.post(
        "/daily-check-in",
        json={"log_date": "2024-01-01", "sleep_hours": 8, "notes": "tired"},
    )
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["log"]["id"] == log_id
    assert second.json()["log"]["sleep_hours"] == 8.0
    assert second.json()["log"]["notes"] == "tired"

    home = client.get("/")
    assert home.status_code == 200
    home_body = home.json()
    assert home_body["current_user"]["user_id"] == user_id
    assert len(home_body["logs"]) == 1
    assert home_body["logs"][0]["id"] == log_id
    assert home_body["logs"][0]["log_date"] == "2024-01-01"

    db = SessionLocal()
    try:
        assert db.query(DailyLog).filter(DailyLog.user_id == user_id).count() == 1
    finally:
        db.close()


def test_login_sets_new_session_for_registered_user():
    username = _username("login")
    registered = _register(TestClient(app), username).json()["user"]

    client = TestClient(app)
    login = client.post("/auth/login", json={"username": username, "password": PASSWORD})
    assert login.status_code == 200
    assert login.json()["user"]["user_id"] == registered["user_id"]

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == username


def test_unknown_user_and_wrong_password_look_the_same():
    username = _username("enum")
    _register(TestClient(app), username)
    client = TestClient(app)
    wrong_password = client.post("/auth/login", json={"username": username, "password": "Wr0ng!Pass"})
    unknown_user = client.post("/auth/login", json={"username": _username("ghost"), "password": PASSWORD})
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()


def test_register_conflict_and_validation_errors():
    client = TestClient(app)
    username = _username("dup")
    assert _register(client, username).status_code == 201

    duplicate = _register(TestClient(app), username)
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "Username already taken."

    weak = _register(TestClient(app), _username("weak"), password="password")
    assert weak.status_code == 400
    assert "uppercase" in weak.json()["detail"]

    missing = TestClient(app).post("/auth/register", json={"username": _username("missing"), "password": PASSWORD})
    assert missing.status_code == 400
    assert missing.json()["detail"] == "All fields required."


def test_checkin_requires_session():
    client = TestClient(app)
    for response in (
        client.get("/daily-check-in"),
        client.post("/daily-check-in", json={"log_date": "2024-01-01"}),
    ):
        assert response.status_code == 401
        assert response.json()["detail"]["login_url"] == "/auth/login"

    via_base = client.get("/usr/417/daily-check-in")
    assert via_base.status_code == 401
    assert via_base.json()["detail"]["login_url"] == "/usr/417/auth/login"


def test_checkin_rejects_bad_input_without_writing():
    client = TestClient(app)
    user_id = _register(client, _username("bad"))
    user_id = user_id.json()["user"]["user_id"]

    bad_date = client.post("/daily-check-in", json={"log_date": "not-a-date", "sleep_hours": 7})
    assert bad_date.status_code == 400

    no_date = client.post("/daily-check-in", json={"sleep_hours": 7})
    assert no_date.status_code == 400

    bad_number = client.post("/daily-check-in", json={"log_date": "2024-01-01", "mood_score": "great"})
    assert bad_number.status_code == 422

    db = SessionLocal()
    try:
        assert db.query(DailyLog).filter(DailyLog.user_id == user_id).count() == 0
    finally:
        db.close()


def test_checkin_form_returns_existing_entry():
    client = TestClient(app)
    _register(client, _username("form"))

    empty = client.get("/daily-check-in", params={"log_date": "2024-05-05"})
    assert empty.status_code == 200
    assert empty.json() == {"log_date": "2024-05-05", "log": None}

    client.post("/daily-check-in", json={"log_date": "2024-05-05", "mood_score": "", "cycle_day": 12})
    filled = client.get("/daily-check-in", params={"log_date": "2024-05-05"})
    assert filled.json()["log"]["cycle_day"] == 12
    assert filled.json()["log"]["mood_score"] is None

    padded = client.get("/daily-check-in", params={"log_date": " 2024-05-05 "})
    assert padded.status_code == 200
    assert padded.json()["log_date"] == "2024-05-05"
    assert padded.json()["log"]["cycle_day"] == 12

    assert client.get("/daily-check-in", params={"log_date": "05/05/2024"}).status_code == 400


def test_checkin_rejects_booleans_for_numbers():
    client = TestClient(app)
    user_id = _register(client, _username("bool")).json()["user"]["user_id"]

    for field in ("mood_score", "sleep_hours"):
        response = client.post("/daily-check-in", json={"log_date": "2024-02-01", field: True})
        assert response.status_code == 422

    db = SessionLocal()
    try:
        assert db.query(DailyLog).filter(DailyLog.user_id == user_id).count() == 0
    finally:
        db.close()


def test_database_failure_maps_to_503(monkeypatch):
    client = TestClient(app)
    user_id = _register(client, _username("dbdown")).json()["user"]["user_id"]

    def disk_error(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(OrmSession, "commit", disk_error)
    response = client.post("/daily-check-in", json={"log_date": "2024-06-01", "sleep_hours": 7})
    monkeypatch.undo()

    assert response.status_code == 503
    assert response.json() == {"detail": "Could not save log."}
    db = SessionLocal()
    try:
        assert db.query(DailyLog).filter(DailyLog.user_id == user_id).count() == 0
    finally:
        db.close()


def test_home_is_empty_when_anonymous():
    response = TestClient(app).get("/")
    assert response.status_code == 200
    assert response.json() == {"current_user": None, "logs": []}


def test_logout_clears_session_and_is_idempotent():
    client = TestClient(app)
    _register(client, _username("logout"))
    assert client.get("/auth/me").status_code == 200

    first = client.post("/auth/logout")
    assert first.status_code == 200
    assert client.get("/auth/me").status_code == 401

    again = client.get("/auth/logout")
    assert again.status_code == 200


def test_recipe_search_endpoint():
    marker = uuid.uuid4().hex[:10]
    db = SessionLocal()
    try:
        seed_recipes(
            db,
            [
                {"title": f"B {marker} Keto Bowl", "summary": "bowl", "main_tag": "lunch"},
                {"title": f"A {marker} Soup", "summary": "KETO soup", "main_tag": "dinner"},
                {"title": f"C {marker} Toast", "summary": "toast", "main_tag": "breakfast"},
            ],
        )
    finally:
        db.close()

    client = TestClient(app)
    everything = client.get("/recipes")
    assert everything.status_code == 200
    titles = [r["title"] for r in everything.json()["recipes"]]
    assert titles == sorted(titles)

    hits = client.get("/recipes", params={"q": f"{marker}"}).json()
    assert [r["title"] for r in hits["recipes"]] == [f"A {marker} Soup", f"B {marker} Keto Bowl", f"C {marker} Toast"]

    keto = client.get("/usr/417/recipes", params={"q": "keto"})
    assert keto.status_code == 200
    keto_titles = [r["title"] for r in keto.json()["recipes"]]
    assert f"A {marker} Soup" in keto_titles
    assert f"B {marker} Keto Bowl" in keto_titles
    assert f"C {marker} Toast" not in keto_titles
    assert keto.json()["search"] == "keto"


def test_base_path_mount_serves_same_routes():
    client = TestClient(app)
    register = client.post(
        "/usr/417/auth/register",
        json={"username": _username("base"), "display_name": "Base User", "password": PASSWORD},
    )
    assert register.status_code == 201
    assert register.json()["redirect_to"] == "/usr/417"
    assert client.get("/usr/417/about").json()["app"] == settings.APP_NAME
    assert client.get("/usr/417/auth/me").status_code == 200


def test_health_response_includes_security_headers():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers.get("x-content-type-options") == "nosniff"
    assert response.headers.get("x-frame-options") == "DENY"
    assert "default-src 'self'" in (response.headers.get("content-security-policy") or "")


def test_login_is_rate_limited(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_AUTH_LOGIN_ATTEMPTS", 2)
    client = TestClient(app)
    username = _username("throttle")
    statuses = [
        client.post("/auth/login", json={"username": username, "password": "x"}).status_code
        for _ in range(3)
    ]
    assert statuses[:2] == [401, 401]
    assert statuses[2] == 429

