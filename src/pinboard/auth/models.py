"""SQLAlchemy models for users and server-side sessions."""

import uuid

from sqlalchemy import Column, String, DateTime, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import validates

from pinboard.metadata import Base, now_utc_naive


USER_ROLES = ("user", "admin")


class User(Base):
    """Local user record linked to a Firebase identity.

    Attributes:
        id: UUID primary key used by images and sessions
        firebase_uid: Firebase UID (unique, immutable once set)
        github_id: Legacy GitHub OAuth id (optional, unique when present)
        email: Email reported by the identity provider
        username: Public handle; not unique, lookups take the oldest match
        display_name: Display name reported by the identity provider
        profile_url: Link to the provider profile page
        avatar_url: Avatar image URL
        role: 'user' or 'admin'
        created_at: Account creation timestamp
    """

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    firebase_uid = Column(String(128), nullable=False, unique=True, index=True)
    github_id = Column(String(64), nullable=True, unique=True)
    email = Column(String(255), index=True)
    username = Column(String(255), nullable=False, index=True)
    display_name = Column(String(255))
    profile_url = Column(String)
    avatar_url = Column(String)
    role = Column(String(16), nullable=False, default="user")
    created_at = Column(DateTime, nullable=False, default=now_utc_naive, index=True)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    @validates("firebase_uid")
    def _validate_firebase_uid(self, key, value):
        if self.firebase_uid is not None and value != self.firebase_uid:
            raise ValueError("firebase_uid cannot be changed once set")
        return value

    @validates("role")
    def _validate_role(self, key, value):
        if value not in USER_ROLES:
            raise ValueError(f"role must be one of {', '.join(USER_ROLES)}")
        return value

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


class UserSession(Base):
    """Server-side session entry referenced by the session cookie.

    ``user_id`` has no foreign key. A session can outlive its user; the
    resolver destroys such sessions on their next use.
    """

    __tablename__ = "user_sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<UserSession(user_id={self.user_id}, expires_at={self.expires_at})>"
