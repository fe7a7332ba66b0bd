"""User directory: maps verified external identities to local users."""

import logging
import time
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pinboard.auth.jwt import VerifiedIdentity
from pinboard.auth.models import User
from pinboard.errors import UserNotFound

logger = logging.getLogger(__name__)


def _lookup_by_firebase_uid(db: Session, firebase_uid: str) -> Optional[User]:
    return db.query(User).filter(User.firebase_uid == firebase_uid).first()


def username_for_identity(identity: VerifiedIdentity) -> str:
    """Pick a username from the display name, the email local part, or a placeholder."""
    name = (identity.display_name or "").strip()
    if name:
        return name
    email = (identity.email or "").strip()
    if email:
        return email.split("@")[0]
    return f"user_{int(time.time() * 1000)}"


def _merge_profile_hints(db: Session, user: User, identity: VerifiedIdentity) -> User:
    updates = {}
    if identity.display_name and user.display_name != identity.display_name:
        updates["display_name"] = identity.display_name
    if identity.avatar_url and user.avatar_url != identity.avatar_url:
        updates["avatar_url"] = identity.avatar_url
    if identity.email and user.email != identity.email:
        updates["email"] = identity.email

    if not updates:
        return user

    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Updated profile fields %s for user %s", sorted(updates), user.id)
    return user


def find_or_create(db: Session, identity: VerifiedIdentity) -> User:
    """Return the user for ``identity``, creating it on first sign-in.

    Existing users get a partial update of any changed display name, avatar
    or email. When creation collides with a concurrent insert of the same
    Firebase UID, the row written by the other request is re-fetched.
    """
    user = _lookup_by_firebase_uid(db, identity.uid)
    if user is None:
        username = username_for_identity(identity)
        user = User(
            firebase_uid=identity.uid,
            username=username,
            email=identity.email,
            display_name=identity.display_name or username,
            avatar_url=identity.avatar_url,
            role="user",
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            user = _lookup_by_firebase_uid(db, identity.uid)
            if user is None:
                raise
            logger.info("User for uid %s was created concurrently; using existing row", identity.uid)
        else:
            db.refresh(user)
            logger.info("Created user %s (%s) for uid %s", user.id, user.username, identity.uid)
            return user

    return _merge_profile_hints(db, user, identity)


def find_by_username(db: Session, username: str) -> User:
    """Look up a user by username; the oldest account wins on collisions.

    Raises:
        UserNotFound: No user has this username
    """
    user = db.query(User).filter(
        User.username == username
    ).order_by(User.created_at.asc(), User.id.asc()).first()
    if user is None:
        raise UserNotFound("User not found")
    return user


def get_user(db: Session, user_id: UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()
