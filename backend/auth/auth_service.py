"""Wallet challenge/response authentication.

Every identity holds exactly one outstanding nonce. Issuing a challenge overwrites it,
and every verification attempt against an existing identity replaces it before the
outcome is reported, so a signed nonce can be presented at most once.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.session_service import create_session, destroy_session, resolve_session
from auth.wallet import (
    generate_nonce,
    is_valid_wallet_address,
    normalize_wallet_address,
    signature_matches,
)
from db.models import User
from services.errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 50


def get_user_by_wallet(db: Session, wallet_address: str) -> User | None:
    normalized = normalize_wallet_address(wallet_address)
    if not normalized:
        return None
    return db.query(User).filter(User.wallet_address_normalized == normalized).first()


def issue_challenge(db: Session, wallet_address: str) -> str:
    """Create or rotate the identity's nonce and return it as plaintext."""
    if not is_valid_wallet_address(wallet_address):
        raise ValidationError("A valid wallet address is required")

    nonce = generate_nonce()
    user = get_user_by_wallet(db, wallet_address)
    if user:
        user.nonce = nonce
        db.flush()
        return nonce

    user = User(
        wallet_address=wallet_address.strip(),
        wallet_address_normalized=normalize_wallet_address(wallet_address),
        nonce=nonce,
        physical_score=DEFAULT_SCORE,
        mental_score=DEFAULT_SCORE,
        overall_score=DEFAULT_SCORE,
        points=0,
        current_streak=0,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # A concurrent request created the identity first; rotate its nonce instead.
        db.rollback()
        user = get_user_by_wallet(db, wallet_address)
        if not user:
            raise
        user.nonce = nonce
        db.flush()
        return nonce
    logger.info("Created identity %s for new wallet", user.id)
    return nonce


def verify_response(db: Session, wallet_address: str, signature: str) -> tuple[User, str]:
    """Check ``signature`` over the stored nonce; on success bind a new session.

    Returns the identity and the session token to deliver to the client.
    """
    user = get_user_by_wallet(db, wallet_address)
    if not user:
        raise AuthError("User not found")

    challenge = user.nonce
    # Rotate before judging the signature so the nonce is spent either way.
    user.nonce = generate_nonce()
    db.flush()

    if not signature_matches(challenge, signature, user.wallet_address_normalized):
        logger.warning("Signature verification failed for identity %s", user.id)
        raise AuthError("Invalid signature")

    token = create_session(db, user.id)
    return user, token


def current_identity(db: Session, session_token: str | None) -> User | None:
    return resolve_session(db, session_token)


def logout(db: Session, session_token: str | None) -> None:
    destroy_session(db, session_token)
