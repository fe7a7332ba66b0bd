"""Tests for request authentication resolution and the gates built on it."""

import asyncio
import uuid
from typing import Optional

import pytest
from fastapi import Response
from sqlalchemy.orm import Session
from starlette.requests import Request

from pinboard.auth.dependencies import (
    REASON_INVALID_TOKEN,
    REASON_UNAUTHORIZED_ACCESS,
    REASON_USER_NOT_FOUND,
    SOURCE_SESSION,
    SOURCE_TOKEN,
    Authenticated,
    Unauthenticated,
    bearer_token,
    check_authentication,
    ensure_authenticated,
    get_session_user,
    require_resource_owner,
    resolve_principal,
)
from pinboard.auth.models import User, UserSession
from pinboard.auth.sessions import create_session
from pinboard.errors import AuthenticationRequired, Forbidden, NotFound

from conftest import create_user


def _request(session_id: Optional[str] = None, bearer: Optional[str] = None) -> Request:
    headers = []
    if session_id:
        headers.append((b"cookie", f"pinboard_session={session_id}".encode()))
    if bearer is not None:
        headers.append((b"authorization", f"Bearer {bearer}".encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def _resolve(db: Session, verifier, request: Request, response: Optional[Response] = None):
    return asyncio.run(resolve_principal(request, response or Response(), db, verifier))


def test_bearer_token_parsing():
    assert bearer_token(_request(bearer="abc")) == "abc"
    assert bearer_token(_request(bearer="   ")) is None
    assert bearer_token(_request()) is None


def test_live_session_wins_without_touching_verifier(test_db: Session, verifier):
    user = create_user(test_db)
    session_row = create_session(test_db, user.id)

    resolution = _resolve(test_db, verifier, _request(session_row.id, bearer="ignored"))

    assert resolution == Authenticated(principal=user, source=SOURCE_SESSION)
    assert verifier.calls == []


def test_session_for_deleted_user_is_destroyed(test_db: Session, verifier):
    session_row = create_session(test_db, uuid.uuid4())
    session_id = session_row.id
    response = Response()

    resolution = _resolve(test_db, verifier, _request(session_id), response)

    assert resolution == Unauthenticated(REASON_USER_NOT_FOUND)
    assert test_db.query(UserSession).filter(UserSession.id == session_id).count() == 0
    assert "pinboard_session=" in response.headers["set-cookie"]


def test_valid_bearer_token_creates_user_and_session(test_db: Session, verifier):
    verifier.add("good", "fb-new", display_name="New Person")
    response = Response()

    resolution = _resolve(test_db, verifier, _request(bearer="good"), response)

    assert isinstance(resolution, Authenticated)
    assert resolution.source == SOURCE_TOKEN
    assert resolution.principal.firebase_uid == "fb-new"
    assert test_db.query(User).count() == 1

    session_row = test_db.query(UserSession).one()
    assert session_row.user_id == resolution.principal.id
    assert f"pinboard_session={session_row.id}" in response.headers["set-cookie"]


def test_second_request_reuses_session_instead_of_token(test_db: Session, verifier):
    verifier.add("good", "fb-new")
    first = _resolve(test_db, verifier, _request(bearer="good"))
    session_row = test_db.query(UserSession).one()

    second = _resolve(test_db, verifier, _request(session_row.id, bearer="good"))

    assert second.source == SOURCE_SESSION
    assert second.principal.id == first.principal.id
    assert verifier.calls == ["good"]


def test_invalid_bearer_token(test_db: Session, verifier):
    resolution = _resolve(test_db, verifier, _request(bearer="forged"))

    assert resolution == Unauthenticated(REASON_INVALID_TOKEN)
    assert test_db.query(User).count() == 0


def test_unsupported_provider_resolves_as_invalid_token(test_db: Session, verifier):
    verifier.other_provider.add("google")

    resolution = _resolve(test_db, verifier, _request(bearer="google"))

    assert resolution == Unauthenticated(REASON_INVALID_TOKEN)


def test_anonymous_request(test_db: Session, verifier):
    assert _resolve(test_db, verifier, _request()) == Unauthenticated(REASON_UNAUTHORIZED_ACCESS)


def test_expired_session_falls_back_to_anonymous(test_db: Session, verifier):
    user = create_user(test_db)
    session_row = create_session(test_db, user.id, ttl_seconds=-1)

    assert _resolve(test_db, verifier, _request(session_row.id)) == Unauthenticated(REASON_UNAUTHORIZED_ACCESS)


def test_strict_gate_raises_with_resolver_reason(test_db: Session):
    user = create_user(test_db)
    assert asyncio.run(ensure_authenticated(Authenticated(user, SOURCE_SESSION))) is user

    for reason in (REASON_USER_NOT_FOUND, REASON_INVALID_TOKEN, REASON_UNAUTHORIZED_ACCESS):
        with pytest.raises(AuthenticationRequired) as exc:
            asyncio.run(ensure_authenticated(Unauthenticated(reason)))
        assert exc.value.status_code == 401
        assert exc.value.code == reason
        assert exc.value.to_dict()["authenticated"] is False


def test_permissive_gate_never_rejects(test_db: Session):
    user = create_user(test_db)

    signed_in = asyncio.run(check_authentication(Authenticated(user, SOURCE_TOKEN)))
    anonymous = asyncio.run(check_authentication(Unauthenticated(REASON_INVALID_TOKEN)))

    assert signed_in.is_authenticated is True
    assert signed_in.principal is user
    assert anonymous.is_authenticated is False
    assert anonymous.principal is None


def test_session_gate_ignores_bearer_tokens(test_db: Session, verifier):
    verifier.add("good", "fb-new")

    with pytest.raises(AuthenticationRequired) as exc:
        asyncio.run(get_session_user(_request(bearer="good"), Response(), test_db))

    assert exc.value.message == "Not authenticated"
    assert verifier.calls == []


def test_session_gate_returns_session_user(test_db: Session):
    user = create_user(test_db)
    session_row = create_session(test_db, user.id)

    resolved = asyncio.run(get_session_user(_request(session_row.id), Response(), test_db))

    assert resolved.id == user.id


class TestRequireResourceOwner:
    """Ownership gate built from an owner lookup."""

    def test_owner_passes(self, test_db: Session):
        owner = create_user(test_db, "owner")
        check = require_resource_owner(lambda request, db: owner.id)

        assert asyncio.run(check(_request(), owner, test_db)) is owner

    def test_async_owner_lookup_is_awaited(self, test_db: Session):
        owner = create_user(test_db, "owner")

        async def lookup(request, db):
            return owner.id

        check = require_resource_owner(lookup)
        assert asyncio.run(check(_request(), owner, test_db)) is owner

    def test_other_user_is_forbidden(self, test_db: Session):
        owner = create_user(test_db, "owner")
        intruder = create_user(test_db, "intruder")
        check = require_resource_owner(lambda request, db: owner.id)

        with pytest.raises(Forbidden) as exc:
            asyncio.run(check(_request(), intruder, test_db))
        assert exc.value.code == "FORBIDDEN_ACTION"

    def test_missing_resource_is_not_found(self, test_db: Session):
        user = create_user(test_db)
        check = require_resource_owner(lambda request, db: None)

        with pytest.raises(NotFound) as exc:
            asyncio.run(check(_request(), user, test_db))
        assert exc.value.code == "RESOURCE_NOT_FOUND"
