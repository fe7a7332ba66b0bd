"""Shared utilities for image router modules."""

import math
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from pinboard.auth.models import User
from pinboard.errors import NotFound
from pinboard.metadata import Image

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def serialize_owner(user: Optional[User]) -> Optional[dict]:
    """Minimal owner projection shown next to an image."""
    if user is None:
        return None
    return {
        "_id": str(user.id),
        "username": user.username,
        "displayName": user.display_name,
        "avatarUrl": user.avatar_url,
    }


def serialize_image(image: Image) -> dict:
    liked_by = image.liked_by or []
    return {
        "_id": str(image.id),
        "imageUrl": image.image_url,
        "title": image.title or "",
        "description": image.description or "",
        "tags": list(image.tags or []),
        "user": serialize_owner(image.owner),
        "likes": [str(user.id) for user in liked_by],
        "likeCount": len(liked_by),
        "createdAt": image.created_at.isoformat() if image.created_at else None,
    }


def clamp_page_params(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to [1, MAX_PAGE_SIZE]; None takes the default."""
    safe_page = max(1, int(1 if page is None else page))
    requested = DEFAULT_PAGE_SIZE if limit is None else int(limit)
    safe_limit = min(MAX_PAGE_SIZE, max(1, requested))
    return safe_page, safe_limit


def pagination_envelope(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def parse_image_id(image_id: str) -> Optional[UUID]:
    try:
        return UUID(str(image_id))
    except (TypeError, ValueError):
        return None


def get_image_or_404(db: Session, image_id: str) -> Image:
    """Load an image by id; malformed ids are reported as not found."""
    parsed = parse_image_id(image_id)
    if parsed is None:
        raise NotFound("Invalid image ID format")
    image = db.query(Image).filter(Image.id == parsed).first()
    if image is None:
        raise NotFound("Image not found")
    return image
