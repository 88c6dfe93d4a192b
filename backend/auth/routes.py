from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from auth.auth_service import issue_challenge, logout as end_session, verify_response
from auth.models import MessageResponse, NonceRequest, NonceResponse, UserResponse, VerifyRequest, VerifyResponse
from auth.utils import (
    clear_session_cookie,
    client_ip,
    get_optional_user,
    session_token_from_request,
    set_session_cookie,
)
from auth.wallet import normalize_wallet_address
from db.database import get_db
from db.models import User
from services.errors import AuthError
from services.points_service import ensure_referral_code
from services.rate_limit_service import nonce_rule, require_within_rate_limit, verify_rule

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/nonce", response_model=NonceResponse)
def get_nonce(req: NonceRequest, request: Request, db: Session = Depends(get_db)):
    ip = client_ip(request)
    require_within_rate_limit(nonce_rule(), f"{ip}:{normalize_wallet_address(req.wallet_address)}", ip_address=ip)
    nonce = issue_challenge(db, req.wallet_address)
    db.commit()
    return NonceResponse(nonce=nonce)


@router.post("/verify", response_model=VerifyResponse)
def verify(req: VerifyRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    ip = client_ip(request)
    require_within_rate_limit(verify_rule(), f"{ip}:{normalize_wallet_address(req.wallet_address)}", ip_address=ip)
    try:
        user, token = verify_response(db, req.wallet_address, req.signature)
    except AuthError:
        # The nonce rotation stays committed even when verification fails.
        db.commit()
        raise
    db.commit()
    db.refresh(user)
    set_session_cookie(response, token)
    return VerifyResponse(user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(user: User | None = Depends(get_optional_user), db: Session = Depends(get_db)):
    if not user:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=None)
    if ensure_referral_code(db, user):
        db.commit()
        db.refresh(user)
    return user


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    end_session(db, session_token_from_request(request))
    db.commit()
    clear_session_cookie(response)
    return MessageResponse(message="Logged out")
