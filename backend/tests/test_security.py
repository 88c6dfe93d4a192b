from __future__ import annotations

import base64
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import Settings, settings  # noqa: E402
from main import app  # noqa: E402
from services.errors import RateLimitError  # noqa: E402
from services.rate_limit_service import (  # noqa: E402
    InMemoryRateLimiter,
    RateLimitRule,
    chat_rule,
    nonce_rule,
    require_within_rate_limit,
    verify_rule,
)
from utils.image_utils import decode_image_data_url, validate_image_payload  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_validate_image_payload_accepts_png_signature():
    assert validate_image_payload(PNG_BYTES, content_type="image/png") == "image/png"


def test_validate_image_payload_rejects_non_image_payload():
    with pytest.raises(ValueError):
        validate_image_payload(b"not-an-image", content_type="image/png")


def test_decode_image_data_url_rejects_disguised_payload():
    encoded = base64.b64encode(PNG_BYTES).decode("ascii")
    image_bytes, mime = decode_image_data_url(f"data:image/png;base64,{encoded}")
    assert image_bytes == PNG_BYTES
    assert mime == "image/png"

    with pytest.raises(ValueError):
        decode_image_data_url(f"data:image/jpeg;base64,{encoded}")
    with pytest.raises(ValueError):
        decode_image_data_url(encoded)
    with pytest.raises(ValueError):
        decode_image_data_url("data:image/png;base64,%%%")


def test_production_security_gate_rejects_insecure_cookie():
    settings = Settings(ENVIRONMENT="production", AUTH_COOKIE_SECURE=False)
    with pytest.raises(RuntimeError):
        settings.validate_security_configuration()


def test_production_security_gate_rejects_short_nonce():
    settings = Settings(ENVIRONMENT="production", AUTH_COOKIE_SECURE=True, NONCE_BYTES=8)
    with pytest.raises(RuntimeError):
        settings.validate_security_configuration()


def test_development_settings_pass_security_gate():
    Settings(ENVIRONMENT="development", AUTH_COOKIE_SECURE=False).validate_security_configuration()


def test_in_memory_rate_limiter_blocks_after_limit():
    limiter = InMemoryRateLimiter()
    for _ in range(3):
        assert limiter.hit("k", limit=3, window_seconds=60).allowed
    decision = limiter.hit("k", limit=3, window_seconds=60)
    assert not decision.allowed
    assert 1 <= decision.retry_after <= 60
    assert decision.remaining == 0

    limiter.reset()
    assert limiter.hit("k", limit=3, window_seconds=60).allowed


def test_rate_limiter_forgets_idle_keys():
    limiter = InMemoryRateLimiter(sweep_interval_seconds=60)
    start = 1_000_000.0
    for idx in range(50):
        limiter.hit(f"nonce:0x{idx:040x}", limit=5, window_seconds=30, now=start)
    assert len(limiter) == 50

    limiter.hit("nonce:fresh", limit=5, window_seconds=30, now=start + 120)
    assert len(limiter) == 1


def test_require_within_rate_limit_raises_with_retry_after():
    rule = RateLimitRule(endpoint="/api/test-limit", limit=1, window_seconds=30, message="slow down")
    require_within_rate_limit(rule, "scope-a")
    with pytest.raises(RateLimitError) as excinfo:
        require_within_rate_limit(rule, "scope-a")
    assert excinfo.value.status_code == 429
    assert excinfo.value.message == "slow down"
    assert excinfo.value.retry_after >= 1
    # Other scopes are counted separately.
    require_within_rate_limit(rule, "scope-b")


def test_sign_in_rules_follow_settings():
    assert nonce_rule().limit == settings.RATE_LIMIT_AUTH_NONCE_ATTEMPTS
    assert verify_rule().window_seconds == settings.RATE_LIMIT_AUTH_VERIFY_WINDOW_SECONDS
    assert chat_rule().endpoint == "/api/chat"


def test_health_endpoint_sets_security_headers():
    client = TestClient(app)
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Content-Security-Policy" in response.headers
