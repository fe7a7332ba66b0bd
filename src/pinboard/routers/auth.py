"""Authentication endpoints backed by Firebase ID tokens.

The browser signs in with Firebase (GitHub provider only) and posts the
resulting ID token here once. The server verifies it, finds or creates the
local user and issues its own session cookie; later requests ride on that
cookie and never touch Firebase again.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from pinboard.auth.dependencies import get_session_user
from pinboard.auth.directory import find_by_username, find_or_create
from pinboard.auth.jwt import FirebaseTokenVerifier
from pinboard.auth.models import User
from pinboard.auth.schemas import FirebaseAuthRequest, PublicProfileResponse, UserResponse
from pinboard.auth.sessions import (
    clear_session_cookie,
    create_session,
    destroy_session,
    read_session_id,
    set_session_cookie,
)
from pinboard.dependencies import get_db, get_verifier
from pinboard.errors import BadRequest, CredentialError, InvalidToken, UnsupportedProvider
from pinboard.metadata import Image
from pinboard.ratelimit import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/firebase-auth", response_model=dict)
@limiter.limit("120/minute")
async def firebase_auth(
    request: Request,
    response: Response,
    body: FirebaseAuthRequest,
    db: Session = Depends(get_db),
    verifier: FirebaseTokenVerifier = Depends(get_verifier),
):
    """Exchange a Firebase ID token for a server-side session.

    Raises:
        BadRequest 400: No ID token in the body
        InvalidToken 401: Signature, audience, issuer or expiry check failed
        UnsupportedProvider 403: Token was not issued for a GitHub sign-in
    """
    id_token = (body.id_token or "").strip()
    if not id_token:
        raise BadRequest("ID token is required", code="MISSING_TOKEN")

    try:
        identity = await verifier.verify(id_token)
    except UnsupportedProvider:
        logger.info("Firebase sign-in rejected: unsupported provider")
        raise
    except CredentialError as e:
        # Verification detail stays in the log
        logger.info("Firebase sign-in rejected: %s", e.message)
        raise InvalidToken() from e

    user = find_or_create(db, identity)

    # Replace whatever session the browser held before.
    previous = read_session_id(request)
    if previous:
        destroy_session(db, previous)
    session_row = create_session(db, user.id)
    set_session_cookie(response, session_row)

    logger.info("User %s signed in via %s", user.id, identity.provider)
    return UserResponse.from_user(user).model_dump(by_alias=True)


@router.get("/user", response_model=dict)
async def current_user(user: User = Depends(get_session_user)):
    """The user behind the session cookie."""
    return UserResponse.from_user(user).model_dump(by_alias=True)


@router.get("/user/{username}", response_model=dict)
async def public_profile(username: str, db: Session = Depends(get_db)):
    """Public profile of ``username`` with the number of images they own."""
    user = find_by_username(db, username)
    image_count = db.query(func.count(Image.id)).filter(
        Image.user_id == user.id
    ).scalar() or 0
    return PublicProfileResponse.from_user(user, image_count).model_dump(
        by_alias=True, mode="json"
    )


@router.get("/logout", response_model=dict)
async def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Destroy the caller's session and clear its cookie."""
    session_id = read_session_id(request)
    if not session_id:
        clear_session_cookie(response)
        return {"message": "Already logged out"}

    destroy_session(db, session_id)
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}
