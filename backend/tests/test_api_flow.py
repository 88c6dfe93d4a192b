from __future__ import annotations

import base64
import sys
from pathlib import Path

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from main import app  # noqa: E402
import ai.health_assistant as health_assistant  # noqa: E402
from db.database import Base, get_db  # noqa: E402
from services.rate_limit_service import limiter  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def client(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    limiter.reset()
    monkeypatch.setattr(health_assistant, "get_provider", lambda: None)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


def _sign(account, message: str) -> str:
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    sig = signed.signature.hex()
    return sig if sig.startswith("0x") else f"0x{sig}"


def _login(client: TestClient, account) -> dict:
    nonce = client.post("/api/auth/nonce", json={"walletAddress": account.address})
    assert nonce.status_code == 200
    verify = client.post(
        "/api/auth/verify",
        json={"walletAddress": account.address, "signature": _sign(account, nonce.json()["nonce"])},
    )
    assert verify.status_code == 200
    return verify.json()


def test_wallet_login_me_and_logout(client):
    account = Account.create()
    body = _login(client, account)

    assert body["token"] == "session_cookie_used"
    assert body["user"]["walletAddress"] == account.address
    assert body["user"]["physicalScore"] == 50
    assert "nonce" not in body["user"]

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["id"] == body["user"]["id"]
    assert me.json()["referralCode"].startswith("VITAL")

    logout = client.post("/api/auth/logout")
    assert logout.status_code == 200
    assert logout.json() == {"message": "Logged out"}

    me_after = client.get("/api/auth/me")
    assert me_after.status_code == 401
    assert me_after.json() is None
    # Idempotent.
    assert client.post("/api/auth/logout").status_code == 200


def test_session_cookie_is_http_only(client):
    account = Account.create()
    nonce = client.post("/api/auth/nonce", json={"walletAddress": account.address}).json()["nonce"]
    verify = client.post(
        "/api/auth/verify",
        json={"walletAddress": account.address, "signature": _sign(account, nonce)},
    )
    set_cookie = verify.headers.get("set-cookie", "").lower()
    assert "vital_session=" in set_cookie
    assert "httponly" in set_cookie


def test_replayed_signature_is_rejected(client):
    account = Account.create()
    nonce = client.post("/api/auth/nonce", json={"walletAddress": account.address}).json()["nonce"]
    payload = {"walletAddress": account.address, "signature": _sign(account, nonce)}

    assert client.post("/api/auth/verify", json=payload).status_code == 200
    replay = client.post("/api/auth/verify", json=payload)
    assert replay.status_code == 401
    assert replay.json() == {"message": "Invalid signature"}


def test_failed_attempt_spends_the_nonce(client):
    account = Account.create()
    nonce = client.post("/api/auth/nonce", json={"walletAddress": account.address}).json()["nonce"]

    bad = client.post("/api/auth/verify", json={"walletAddress": account.address, "signature": "0x1234"})
    assert bad.status_code == 401

    late = client.post(
        "/api/auth/verify",
        json={"walletAddress": account.address, "signature": _sign(account, nonce)},
    )
    assert late.status_code == 401


def test_nonce_validation_errors(client):
    missing = client.post("/api/auth/nonce", json={})
    assert missing.status_code == 400
    assert "message" in missing.json()

    malformed = client.post("/api/auth/nonce", json={"walletAddress": "hello"})
    assert malformed.status_code == 400
    assert malformed.json() == {"message": "A valid wallet address is required"}

    unknown = client.post(
        "/api/auth/verify",
        json={"walletAddress": Account.create().address, "signature": "0x00"},
    )
    assert unknown.status_code == 401
    assert unknown.json() == {"message": "User not found"}


def test_protected_routes_require_session(client):
    for method, path in [
        ("get", "/api/tasks"),
        ("post", "/api/tasks/generate"),
        ("get", "/api/symptoms"),
        ("get", "/api/reminders"),
        ("get", "/api/points"),
        ("post", "/api/chat"),
    ]:
        response = getattr(client, method)(path)
        assert response.status_code == 401, path
        assert response.json() == {"message": "Not authenticated"}


def test_task_completion_awards_points_and_streak(client):
    _login(client, Account.create())

    generated = client.post("/api/tasks/generate")
    assert generated.status_code == 200
    tasks = generated.json()
    assert [t["type"] for t in tasks] == ["steps", "water", "sleep", "exercise"]

    listed = client.get("/api/tasks", params={"date": tasks[0]["date"]})
    assert [t["id"] for t in listed.json()] == [t["id"] for t in tasks]

    done = client.patch(f"/api/tasks/{tasks[0]['id']}", json={"completed": True, "current": 10000})
    assert done.status_code == 200
    assert done.json()["completed"] is True
    assert done.json()["current"] == 10000

    again = client.patch(f"/api/tasks/{tasks[0]['id']}", json={"completed": True})
    assert again.status_code == 200

    second = client.patch(f"/api/tasks/{tasks[1]['id']}", json={"completed": True})
    assert second.status_code == 200

    points = client.get("/api/points").json()
    assert points == {"points": 20, "streak": 1, "canRedeem": False, "redeemValue": 0}

    missing = client.patch("/api/tasks/999999", json={"completed": True})
    assert missing.status_code == 404
    assert missing.json() == {"message": "Task not found"}

    bad_date = client.get("/api/tasks", params={"date": "14/03/2026"})
    assert bad_date.status_code == 400

    unknown_field = client.patch(f"/api/tasks/{tasks[2]['id']}", json={"points": 1000})
    assert unknown_field.status_code == 400


def test_referral_between_two_wallets(client):
    referrer_account = Account.create()
    _login(client, referrer_account)
    code = client.get("/api/auth/me").json()["referralCode"]

    other = TestClient(app)
    _login(other, Account.create())

    applied = other.post("/api/points/referral", json={"referralCode": code})
    assert applied.status_code == 200
    assert applied.json() == {"success": True, "points": 100}

    repeat = other.post("/api/points/referral", json={"referralCode": code})
    assert repeat.status_code == 409

    self_code = client.post("/api/points/referral", json={"referralCode": code})
    assert self_code.status_code == 400

    unknown = client.post("/api/points/referral", json={"referralCode": "VITAL0NONE"})
    assert unknown.status_code == 404

    assert client.get("/api/points").json()["points"] == 100


def test_profile_update_scores_questionnaire(client):
    _login(client, Account.create())

    response = client.patch(
        "/api/users/profile",
        json={
            "name": "Ravi",
            "height": 175,
            "weight": 70,
            "lifestyle": "student",
            "questionnaire": {"sleepDuration": 8, "stressLevel": 4, "mood": "positive"},
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["bmi"] == 23
    assert body["physicalScore"] == 60
    assert body["mentalScore"] == 83
    assert body["questionnaire"] == {"sleepDuration": 8.0, "stressLevel": 4, "mood": "positive"}

    forbidden = client.patch("/api/users/profile", json={"points": 99999})
    assert forbidden.status_code == 400


def test_symptoms_and_reminders(client):
    _login(client, Account.create())

    created = client.post("/api/symptoms", json={"description": "headache", "severity": 8, "duration": 2})
    assert created.status_code == 201
    symptom = created.json()
    assert symptom["riskLevel"] == "high"
    assert "headache" in symptom["aiAnalysis"]
    assert client.get("/api/symptoms").json()[0]["id"] == symptom["id"]

    invalid = client.post("/api/symptoms", json={"description": "x", "severity": 11, "duration": 1})
    assert invalid.status_code == 400

    reminder = client.post(
        "/api/reminders",
        json={"type": "medicine", "title": "Vitamin D", "datetime": "2026-03-15T08:00:00Z", "dosage": "1000 IU"},
    )
    assert reminder.status_code == 201
    reminder_id = reminder.json()["id"]
    assert reminder.json()["completed"] is False

    toggled = client.patch(f"/api/reminders/{reminder_id}/toggle")
    assert toggled.status_code == 200
    assert toggled.json()["completed"] is True
    assert client.get("/api/reminders").json()[0]["completed"] is True

    assert client.patch("/api/reminders/999999/toggle").status_code == 404

    blank_title = client.post(
        "/api/reminders",
        json={"type": "doctor", "title": "   ", "datetime": "2026-03-16T09:00:00Z"},
    )
    assert blank_title.status_code == 400
    assert len(client.get("/api/reminders").json()) == 1


def test_chat_falls_back_when_ai_unavailable(client):
    _login(client, Account.create())

    reply = client.post("/api/chat", json={"message": "I have a sore throat"})
    assert reply.status_code == 200
    assert reply.json() == {"reply": health_assistant.CHAT_FALLBACK_REPLY}

    data_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
    image = client.post("/api/chat/image", json={"image": data_url})
    assert image.status_code == 200
    assert image.json() == {"analysis": health_assistant.IMAGE_FALLBACK_ANALYSIS}

    not_an_image = client.post("/api/chat/image", json={"image": "data:image/png;base64,aGVsbG8="})
    assert not_an_image.status_code == 400


def test_chat_uses_provider_and_survives_errors(client, monkeypatch):
    _login(client, Account.create())

    class _Provider:
        def get_model(self):
            return "test-model"

        async def chat(self, messages, model, system="", max_tokens=None):
            assert "USER MEDICAL CONTEXT" in system
            return {"content": "Try warm salt water gargles.", "tokens_in": 1, "tokens_out": 1, "model": model}

    class _BrokenProvider(_Provider):
        async def chat(self, messages, model, system="", max_tokens=None):
            raise RuntimeError("upstream timeout")

    monkeypatch.setattr(health_assistant, "get_provider", lambda: _Provider())
    ok = client.post("/api/chat", json={"message": "sore throat"})
    assert ok.json() == {"reply": "Try warm salt water gargles."}

    monkeypatch.setattr(health_assistant, "get_provider", lambda: _BrokenProvider())
    degraded = client.post("/api/chat", json={"message": "sore throat"})
    assert degraded.status_code == 200
    assert degraded.json() == {"reply": health_assistant.CHAT_FALLBACK_REPLY}
