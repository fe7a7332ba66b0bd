"""FastAPI dependencies for authentication and authorization.

Every request is resolved once into either ``Authenticated`` or
``Unauthenticated``; the strict, permissive and ownership gates below are
projections of that single outcome.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from pinboard.auth.directory import find_or_create, get_user
from pinboard.auth.jwt import FirebaseTokenVerifier
from pinboard.auth.models import User
from pinboard.auth.sessions import (
    clear_session_cookie,
    create_session,
    destroy_session,
    get_live_session,
    read_session_id,
    set_session_cookie,
)
from pinboard.dependencies import get_db, get_verifier
from pinboard.errors import AuthenticationRequired, CredentialError, Forbidden, NotFound

logger = logging.getLogger(__name__)

SOURCE_SESSION = "session"
SOURCE_TOKEN = "token"

REASON_USER_NOT_FOUND = "USER_NOT_FOUND"
REASON_INVALID_TOKEN = "INVALID_TOKEN"
REASON_UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"

_REASON_MESSAGES = {
    REASON_USER_NOT_FOUND: "User not found. Please log in again.",
    REASON_INVALID_TOKEN: "Invalid or expired authentication token.",
    REASON_UNAUTHORIZED_ACCESS: "Authentication required. Please log in to access this resource.",
}


@dataclass(frozen=True)
class Authenticated:
    principal: User
    source: str


@dataclass(frozen=True)
class Unauthenticated:
    reason: str


Resolution = Union[Authenticated, Unauthenticated]


@dataclass(frozen=True)
class AuthContext:
    """Outcome handed to endpoints that serve anonymous and signed-in callers."""

    is_authenticated: bool
    principal: Optional[User]


def bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization") or ""
    if not authorization.startswith("Bearer "):
        return None
    token = authorization[7:].strip()  # Remove "Bearer " prefix
    return token or None


def resolve_session(request: Request, response: Response, db: Session) -> Optional[Resolution]:
    """Resolve the caller from the session cookie alone.

    Returns None when the request carries no live session.
    """
    session_row = get_live_session(db, read_session_id(request))
    if session_row is None:
        return None

    user = get_user(db, session_row.user_id)
    if user is None:
        logger.info("Session %s... references missing user %s", session_row.id[:8], session_row.user_id)
        destroy_session(db, session_row.id)
        clear_session_cookie(response)
        return Unauthenticated(REASON_USER_NOT_FOUND)
    return Authenticated(principal=user, source=SOURCE_SESSION)


async def resolve_principal(
    request: Request,
    response: Response,
    db: Session,
    verifier: FirebaseTokenVerifier,
) -> Resolution:
    """Decide who is calling.

    1. A live server-side session wins and never touches the verifier.
    2. Otherwise a bearer token is verified, the user is found or created,
       and a new session is issued so later requests take path 1.
    3. Otherwise the caller is anonymous.
    """
    from_session = resolve_session(request, response, db)
    if from_session is not None:
        return from_session

    token = bearer_token(request)
    if token is None:
        return Unauthenticated(REASON_UNAUTHORIZED_ACCESS)

    try:
        identity = await verifier.verify(token)
    except CredentialError as e:
        logger.info("Bearer token rejected: %s", e.message)
        return Unauthenticated(REASON_INVALID_TOKEN)

    user = find_or_create(db, identity)
    session_row = create_session(db, user.id)
    set_session_cookie(response, session_row)
    return Authenticated(principal=user, source=SOURCE_TOKEN)


async def get_resolution(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    verifier: FirebaseTokenVerifier = Depends(get_verifier),
) -> Resolution:
    """Per-request resolution shared by every gate below."""
    return await resolve_principal(request, response, db, verifier)


def require_principal(resolution: Resolution) -> User:
    """Project a resolution onto a user or raise a 401."""
    if isinstance(resolution, Authenticated):
        return resolution.principal
    raise AuthenticationRequired(
        _REASON_MESSAGES.get(resolution.reason),
        code=resolution.reason,
    )


async def ensure_authenticated(
    resolution: Resolution = Depends(get_resolution),
) -> User:
    """Strict gate: the authenticated user, or 401 with the resolver reason."""
    return require_principal(resolution)


async def check_authentication(
    resolution: Resolution = Depends(get_resolution),
) -> AuthContext:
    """Permissive gate: never rejects, reports who (if anyone) is calling."""
    if isinstance(resolution, Authenticated):
        return AuthContext(is_authenticated=True, principal=resolution.principal)
    return AuthContext(is_authenticated=False, principal=None)


async def get_session_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> User:
    """Session-only gate; bearer tokens are not consulted."""
    resolution = resolve_session(request, response, db)
    if resolution is None:
        raise AuthenticationRequired("Not authenticated")
    return require_principal(resolution)


def require_resource_owner(get_owner_id: Callable[[Request, Session], Any]) -> Callable:
    """Dependency factory checking the caller owns a resource.

    ``get_owner_id(request, db)`` returns the owning user id (or awaits to it),
    or None when the resource does not exist.

    Usage:
        @router.put("/things/{thing_id}")
        async def edit_thing(user: User = Depends(require_resource_owner(thing_owner))):
            ...
    """
    async def check_owner(
        request: Request,
        user: User = Depends(ensure_authenticated),
        db: Session = Depends(get_db),
    ) -> User:
        owner_id = get_owner_id(request, db)
        if inspect.isawaitable(owner_id):
            owner_id = await owner_id

        if not owner_id:
            raise NotFound("Resource not found", code="RESOURCE_NOT_FOUND")
        if str(owner_id) != str(user.id):
            raise Forbidden(
                "You do not have permission to perform this action",
                code="FORBIDDEN_ACTION",
            )
        return user

    return check_owner
