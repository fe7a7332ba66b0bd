"""Core image endpoints: list, per-user galleries, search, get, delete."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pinboard.auth.dependencies import AuthContext, check_authentication, ensure_authenticated
from pinboard.auth.directory import find_by_username
from pinboard.auth.models import User
from pinboard.dependencies import get_db, get_upload_storage
from pinboard.errors import Forbidden, MissingQuery
from pinboard.metadata import Image
from pinboard.routers.images._shared import (
    DEFAULT_PAGE_SIZE,
    clamp_page_params,
    get_image_or_404,
    pagination_envelope,
    serialize_image,
    serialize_owner,
)
from pinboard.search import ImageSearch
from pinboard.storage import UploadStorageProvider

# Sub-router with no prefix/tags (inherits from parent)
router = APIRouter()
logger = logging.getLogger(__name__)


def list_images_page(
    db: Session,
    *,
    page: int,
    limit: int,
    owner_id: Optional[UUID] = None,
) -> tuple[list, dict]:
    """Newest-first page of images, optionally restricted to one owner."""
    query = db.query(Image)
    if owner_id is not None:
        query = query.filter(Image.user_id == owner_id)

    total = query.count()
    images = query.order_by(
        Image.created_at.desc(),
        Image.id.desc(),
    ).offset((page - 1) * limit).limit(limit).all()
    return images, pagination_envelope(total, page, limit)


def can_delete(image: Image, user: Optional[User]) -> bool:
    if user is None:
        return False
    return image.user_id == user.id or user.is_admin


@router.get("/images", response_model=dict, operation_id="list_images")
async def list_images(
    limit: int = Query(DEFAULT_PAGE_SIZE),
    page: int = Query(1),
    db: Session = Depends(get_db),
):
    """All images, newest first, with a pagination envelope."""
    page, limit = clamp_page_params(page, limit)
    images, pagination = list_images_page(db, page=page, limit=limit)
    return {
        "images": [serialize_image(image) for image in images],
        "pagination": pagination,
    }


@router.get("/images/myimages", response_model=list, operation_id="list_my_images")
async def list_my_images(
    user: User = Depends(ensure_authenticated),
    db: Session = Depends(get_db),
):
    """Every image owned by the caller, newest first."""
    images = db.query(Image).filter(
        Image.user_id == user.id
    ).order_by(Image.created_at.desc(), Image.id.desc()).all()
    return [serialize_image(image) for image in images]


@router.get("/images/user/{username}", response_model=dict, operation_id="list_user_images")
async def list_user_images(
    username: str,
    limit: int = Query(DEFAULT_PAGE_SIZE),
    page: int = Query(1),
    db: Session = Depends(get_db),
):
    """Public gallery of one user."""
    owner = find_by_username(db, username)
    page, limit = clamp_page_params(page, limit)
    images, pagination = list_images_page(db, page=page, limit=limit, owner_id=owner.id)
    owner_projection = serialize_owner(owner)
    owner_projection.pop("_id")
    return {
        "images": [serialize_image(image) for image in images],
        "pagination": pagination,
        "user": owner_projection,
    }


@router.get("/images/search", response_model=dict, operation_id="search_images")
async def search_images(
    q: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    page: int = Query(1),
    db: Session = Depends(get_db),
):
    """Relevance-ranked search over title, description and tags."""
    if not q or not q.strip():
        raise MissingQuery()

    page, limit = clamp_page_params(page, limit)
    images, total = ImageSearch(db).run(q, offset=(page - 1) * limit, limit=limit)
    return {
        "images": [serialize_image(image) for image in images],
        "pagination": pagination_envelope(total, page, limit),
        "query": q,
    }


@router.get("/images/{image_id}", response_model=dict, operation_id="get_image")
async def get_image(
    image_id: str,
    auth: AuthContext = Depends(check_authentication),
    db: Session = Depends(get_db),
):
    """Single image; ``canDelete`` tells a signed-in caller whether they may remove it."""
    image = get_image_or_404(db, image_id)
    payload = serialize_image(image)
    payload["canDelete"] = can_delete(image, auth.principal)
    return payload


@router.delete("/images/{image_id}", response_model=dict, operation_id="delete_image")
async def delete_image(
    image_id: str,
    user: User = Depends(ensure_authenticated),
    db: Session = Depends(get_db),
    storage: UploadStorageProvider = Depends(get_upload_storage),
):
    """Delete an image (owner or admin) and its local upload file, if any."""
    image = get_image_or_404(db, image_id)
    if not can_delete(image, user):
        raise Forbidden("Not authorized to delete this image")

    deleted_id = str(image.id)
    storage_key = image.storage_key
    db.delete(image)
    db.commit()

    if storage_key:
        removed = storage.remove(storage_key)
        logger.info("Deleted image %s (upload file removed: %s)", deleted_id, removed)
    else:
        logger.info("Deleted image %s", deleted_id)

    return {"message": "Image successfully removed", "imageId": deleted_id}
