from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import settings
from db.models import User
from services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_REFERRAL_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_REFERRAL_SUFFIX_LENGTH = 4
_REFERRAL_MAX_ATTEMPTS = 8


@dataclass(frozen=True)
class PointsBalance:
    points: int
    streak: int
    can_redeem: bool
    redeem_value: int


def redeem_value_for(points: int) -> int:
    per_unit = max(int(settings.REDEEM_POINTS_PER_UNIT), 1)
    return (max(int(points), 0) // per_unit) * int(settings.REDEEM_UNIT_VALUE)


def get_balance(user: User) -> PointsBalance:
    points = int(user.points or 0)
    return PointsBalance(
        points=points,
        streak=int(user.current_streak or 0),
        can_redeem=points >= int(settings.REDEEM_MIN_POINTS),
        redeem_value=redeem_value_for(points),
    )


def add_points(db: Session, user: User, amount: int) -> None:
    """Credit ``amount`` points with an in-database increment."""
    if amount is None or int(amount) < 0:
        raise ValidationError("Point amount must be non-negative")
    if int(amount) == 0:
        return
    result = db.execute(
        update(User)
        .where(User.id == user.id)
        .values(points=User.points + int(amount))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("User not found")
    db.expire(user, ["points"])


def _referral_candidate(user_id: int) -> str:
    suffix = "".join(secrets.choice(_REFERRAL_SUFFIX_ALPHABET) for _ in range(_REFERRAL_SUFFIX_LENGTH))
    return f"{settings.REFERRAL_CODE_PREFIX}{user_id}{suffix}"


def ensure_referral_code(db: Session, user: User) -> bool:
    """Assign a referral code if the identity has none yet. Returns True when one was created."""
    if user.referral_code:
        return False
    for _ in range(_REFERRAL_MAX_ATTEMPTS):
        candidate = _referral_candidate(user.id)
        if db.query(User.id).filter(User.referral_code == candidate).first():
            continue
        claimed = db.execute(
            update(User)
            .where(User.id == user.id, User.referral_code.is_(None))
            .values(referral_code=candidate)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.expire(user, ["referral_code"])
        return bool(claimed)
    raise ConflictError("Could not allocate a unique referral code")


def apply_referral(db: Session, user: User, code: str) -> int:
    """Redeem ``code`` for ``user``, crediting both parties. Returns the user's new balance."""
    if user.referred_by:
        raise ConflictError("You have already used a referral code")

    normalized = (code or "").strip().upper()
    referrer = None
    if normalized:
        referrer = db.query(User).filter(User.referral_code == normalized).first()
    if not referrer:
        raise NotFoundError("Invalid referral code")
    if referrer.id == user.id:
        raise ValidationError("Cannot use your own referral code")

    claimed = db.execute(
        update(User)
        .where(User.id == user.id, User.referred_by.is_(None))
        .values(referred_by=normalized)
        .execution_options(synchronize_session=False)
    ).rowcount
    if claimed != 1:
        raise ConflictError("You have already used a referral code")
    db.expire(user, ["referred_by"])

    bonus = int(settings.REFERRAL_BONUS_POINTS)
    add_points(db, user, bonus)
    add_points(db, referrer, bonus)
    db.flush()
    logger.info("Referral %s applied by user %s (referrer %s)", normalized, user.id, referrer.id)
    return int(user.points or 0)
