from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from auth.session_service import resolve_session
from config import settings
from db.database import get_db
from db.models import User
from services.errors import AuthError


def _cookie_name() -> str:
    return (settings.AUTH_COOKIE_NAME or "").strip() or "vital_session"


def client_ip(request: Request) -> str:
    return (request.client.host if request.client else "") or "unknown"


def session_token_from_request(request: Request) -> str | None:
    token = request.cookies.get(_cookie_name())
    return token or None


def set_session_cookie(response: Response, token: str) -> None:
    samesite = (settings.AUTH_COOKIE_SAMESITE or "lax").strip().lower()
    if samesite not in {"strict", "lax", "none"}:
        samesite = "lax"
    response.set_cookie(
        key=_cookie_name(),
        value=token,
        httponly=bool(settings.AUTH_COOKIE_HTTPONLY),
        secure=bool(settings.AUTH_COOKIE_SECURE),
        samesite=samesite,  # type: ignore[arg-type]
        domain=settings.AUTH_COOKIE_DOMAIN,
        path=settings.AUTH_COOKIE_PATH or "/",
        max_age=max(int(settings.SESSION_TTL_HOURS), 1) * 3600,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=_cookie_name(),
        domain=settings.AUTH_COOKIE_DOMAIN,
        path=settings.AUTH_COOKIE_PATH or "/",
    )


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    user = resolve_session(db, session_token_from_request(request))
    if user:
        request.state.user_id = user.id
        # Persists the last_seen_at touch; read-only routes never commit.
        db.commit()
    return user


def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if not user:
        raise AuthError("Not authenticated")
    return user
