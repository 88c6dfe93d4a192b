from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import timedelta

from sqlalchemy.orm import Session

from config import settings
from db.models import User, UserSession
from utils.datetime_utils import utcnow_naive

logger = logging.getLogger(__name__)

LAST_SEEN_RESOLUTION = timedelta(minutes=5)


def _hash_token(token: str) -> str:
    return hashlib.sha256((token or "").encode("utf-8")).hexdigest()


def _cleanup_expired_sessions(db: Session) -> None:
    (
        db.query(UserSession)
        .filter(UserSession.expires_at < utcnow_naive())
        .delete(synchronize_session=False)
    )


def create_session(db: Session, user_id: int) -> str:
    """Bind ``user_id`` to a new server-side session and return the opaque cookie token."""
    _cleanup_expired_sessions(db)
    token = secrets.token_urlsafe(32)
    now = utcnow_naive()
    db.add(
        UserSession(
            token_hash=_hash_token(token),
            user_id=user_id,
            created_at=now,
            last_seen_at=now,
            expires_at=now + timedelta(hours=max(int(settings.SESSION_TTL_HOURS), 1)),
        )
    )
    db.flush()
    logger.info("Session bound for user %s", user_id)
    return token


def resolve_session(db: Session, token: str | None) -> User | None:
    """Return the identity bound to ``token``, or None when unauthenticated."""
    if not token:
        return None
    row = db.query(UserSession).filter(UserSession.token_hash == _hash_token(token)).first()
    if not row:
        return None
    if row.expires_at < utcnow_naive():
        return None
    if row.user_id is None:
        return None
    user = db.get(User, row.user_id)
    if user is None:
        return None
    now = utcnow_naive()
    if row.last_seen_at is None or now - row.last_seen_at >= LAST_SEEN_RESOLUTION:
        row.last_seen_at = now
        db.flush()
    return user


def destroy_session(db: Session, token: str | None) -> bool:
    if not token:
        return False
    deleted = (
        db.query(UserSession)
        .filter(UserSession.token_hash == _hash_token(token))
        .delete(synchronize_session=False)
    )
    if deleted:
        logger.info("Session destroyed")
    return bool(deleted)
