"""Sliding-window request throttling for sign-in and assistant endpoints.

Counters live in process memory; blocked requests are also written to the
``rate_limit_audit_events`` table with the scope key hashed.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass

from config import settings
from db.database import SessionLocal
from db.models import RateLimitAuditEvent
from services.errors import RateLimitError

logger = logging.getLogger(__name__)

SIGN_IN_MESSAGE = "Too many sign-in attempts. Please try again later."
CHAT_MESSAGE = "Too many chat messages. Please slow down."


@dataclass(frozen=True)
class RateLimitRule:
    endpoint: str
    limit: int
    window_seconds: int
    message: str = "Too many requests. Please try again later."


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: int = 0
    remaining: int = 0


def nonce_rule() -> RateLimitRule:
    return RateLimitRule(
        endpoint="/api/auth/nonce",
        limit=settings.RATE_LIMIT_AUTH_NONCE_ATTEMPTS,
        window_seconds=settings.RATE_LIMIT_AUTH_NONCE_WINDOW_SECONDS,
        message=SIGN_IN_MESSAGE,
    )


def verify_rule() -> RateLimitRule:
    return RateLimitRule(
        endpoint="/api/auth/verify",
        limit=settings.RATE_LIMIT_AUTH_VERIFY_ATTEMPTS,
        window_seconds=settings.RATE_LIMIT_AUTH_VERIFY_WINDOW_SECONDS,
        message=SIGN_IN_MESSAGE,
    )


def chat_rule() -> RateLimitRule:
    return RateLimitRule(
        endpoint="/api/chat",
        limit=settings.RATE_LIMIT_CHAT_MESSAGES,
        window_seconds=settings.RATE_LIMIT_CHAT_WINDOW_SECONDS,
        message=CHAT_MESSAGE,
    )


class InMemoryRateLimiter:
    def __init__(self, sweep_interval_seconds: int = 60) -> None:
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._windows: dict[str, int] = {}
        self._lock = threading.Lock()
        self._sweep_interval = max(int(sweep_interval_seconds), 1)
        self._last_sweep: float | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def _sweep(self, now: float) -> None:
        # Drop keys whose every stamp has left its window.
        for key in list(self._hits):
            stamps = self._hits[key]
            if not stamps or stamps[-1] <= now - self._windows.get(key, 1):
                del self._hits[key]
                self._windows.pop(key, None)
        self._last_sweep = now

    def hit(self, key: str, *, limit: int, window_seconds: int, now: float | None = None) -> RateDecision:
        """Count one request against ``key``; rejected requests are not counted."""
        now = time.time() if now is None else now
        window = max(int(window_seconds), 1)
        capacity = max(int(limit), 1)
        with self._lock:
            if self._last_sweep is None:
                self._last_sweep = now
            elif now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            stamps = self._hits[key]
            self._windows[key] = window
            while stamps and stamps[0] <= now - window:
                stamps.popleft()
            if len(stamps) >= capacity:
                return RateDecision(allowed=False, retry_after=int(max(stamps[0] + window - now, 1)))
            stamps.append(now)
            return RateDecision(allowed=True, remaining=capacity - len(stamps))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._windows.clear()


limiter = InMemoryRateLimiter()


def _hash_scope(scope_key: str) -> str:
    return hashlib.sha256((scope_key or "").encode("utf-8")).hexdigest()[:24]


def record_blocked_request(
    rule: RateLimitRule,
    scope_key: str,
    decision: RateDecision,
    *,
    user_id: int | None = None,
    ip_address: str | None = None,
) -> None:
    db = SessionLocal()
    try:
        db.add(
            RateLimitAuditEvent(
                endpoint=rule.endpoint,
                scope_key=_hash_scope(scope_key),
                blocked=True,
                retry_after_seconds=decision.retry_after,
                user_id=user_id,
                ip_address=(ip_address or "").strip()[:128] or None,
                details_json=json.dumps(
                    {"limit": rule.limit, "window_seconds": rule.window_seconds},
                    ensure_ascii=True,
                ),
            )
        )
        db.commit()
    except Exception as e:
        logger.warning(f"Rate limit audit write failed: {e}")
        db.rollback()
    finally:
        db.close()


def require_within_rate_limit(
    rule: RateLimitRule,
    scope_key: str,
    *,
    user_id: int | None = None,
    ip_address: str | None = None,
) -> None:
    decision = limiter.hit(f"{rule.endpoint}:{scope_key}", limit=rule.limit, window_seconds=rule.window_seconds)
    if decision.allowed:
        return
    logger.warning("Rate limit hit on %s (retry after %ss)", rule.endpoint, decision.retry_after)
    record_blocked_request(rule, scope_key, decision, user_id=user_id, ip_address=ip_address)
    raise RateLimitError(rule.message, decision.retry_after)
