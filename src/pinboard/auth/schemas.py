"""Pydantic schemas for authentication requests and user projections."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pinboard.auth.models import User


class FirebaseAuthRequest(BaseModel):
    """Body of POST /api/auth/firebase-auth."""

    model_config = ConfigDict(populate_by_name=True)

    id_token: Optional[str] = Field(default=None, alias="idToken")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UserResponse(_CamelModel):
    """Signed-in user as returned to its owner."""

    id: str = Field(serialization_alias="_id")
    username: str
    display_name: Optional[str] = Field(default=None, serialization_alias="displayName")
    avatar_url: Optional[str] = Field(default=None, serialization_alias="avatarUrl")
    is_admin: bool = Field(default=False, serialization_alias="isAdmin")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=str(user.id),
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            is_admin=user.is_admin,
        )


class PublicProfileResponse(_CamelModel):
    """Public profile page data."""

    id: str = Field(serialization_alias="_id")
    username: str
    display_name: Optional[str] = Field(default=None, serialization_alias="displayName")
    avatar_url: Optional[str] = Field(default=None, serialization_alias="avatarUrl")
    bio: str = ""
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    image_count: int = Field(default=0, serialization_alias="imageCount")

    @classmethod
    def from_user(cls, user: User, image_count: int) -> "PublicProfileResponse":
        return cls(
            id=str(user.id),
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            created_at=user.created_at,
            image_count=image_count,
        )
