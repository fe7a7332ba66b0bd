"""Server-side session store.

Each session is a row keyed by a random token that the browser holds in an
HTTP-only cookie. Expired rows are treated as absent and removed when they
are next looked up; ``prune_expired_sessions`` removes them in bulk.
"""

import secrets
from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import Request, Response
from sqlalchemy.orm import Session

from pinboard.auth.models import UserSession
from pinboard.metadata import now_utc_naive
from pinboard.settings import settings


def create_session(db: Session, user_id: UUID, *, ttl_seconds: Optional[int] = None) -> UserSession:
    """Persist a new session for ``user_id`` and return it."""
    ttl = settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds
    now = now_utc_naive()
    session_row = UserSession(
        id=secrets.token_urlsafe(32),
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )
    db.add(session_row)
    db.commit()
    return session_row


def get_live_session(db: Session, session_id: Optional[str]) -> Optional[UserSession]:
    """Return the session if it exists and has not expired."""
    if not session_id:
        return None
    session_row = db.query(UserSession).filter(UserSession.id == session_id).first()
    if session_row is None:
        return None
    if session_row.expires_at <= now_utc_naive():
        db.delete(session_row)
        db.commit()
        return None
    return session_row


def destroy_session(db: Session, session_id: Optional[str]) -> bool:
    """Delete a session. Returns False when there was nothing to delete."""
    if not session_id:
        return False
    deleted = db.query(UserSession).filter(
        UserSession.id == session_id
    ).delete(synchronize_session=False)
    db.commit()
    return bool(deleted)


def prune_expired_sessions(db: Session) -> int:
    """Delete every expired session and return how many were removed."""
    deleted = db.query(UserSession).filter(
        UserSession.expires_at <= now_utc_naive()
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


def read_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name) or None


def set_session_cookie(response: Response, session_row: UserSession) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_row.id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )
