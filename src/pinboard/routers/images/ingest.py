"""Image ingestion endpoints: add by remote URL, add by file upload."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from pinboard.auth.dependencies import ensure_authenticated
from pinboard.auth.models import User
from pinboard.dependencies import get_db, get_image_url_validator, get_upload_storage
from pinboard.errors import BadRequest
from pinboard.image import (
    ImageFields,
    ImageUrlValidator,
    normalize_image_fields,
    normalize_metadata,
    parse_tags_json,
)
from pinboard.metadata import Image
from pinboard.routers.images._shared import serialize_image
from pinboard.storage import UploadStorageProvider

# Sub-router with no prefix/tags (inherits from parent)
router = APIRouter()
logger = logging.getLogger(__name__)


class AddImageUrlRequest(BaseModel):
    """Body of POST /api/images/url."""

    model_config = ConfigDict(populate_by_name=True)

    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Any = None


def persist_image(
    db: Session,
    owner: User,
    fields: ImageFields,
    storage_key: Optional[str] = None,
) -> Image:
    """Insert an Image owned by ``owner`` and return it with its owner loaded.

    ``storage_key`` is set for uploads only.
    """
    image = Image(
        image_url=fields.image_url,
        storage_key=storage_key,
        title=fields.title,
        description=fields.description,
        tags=fields.tags,
        user_id=owner.id,
        search_text=fields.search_text,
    )
    db.add(image)
    db.commit()
    db.refresh(image)
    return image


@router.post("/images/url", response_model=dict, status_code=201, operation_id="add_image_by_url")
async def add_image_by_url(
    body: AddImageUrlRequest,
    user: User = Depends(ensure_authenticated),
    db: Session = Depends(get_db),
    validator: ImageUrlValidator = Depends(get_image_url_validator),
):
    """Add an image hosted elsewhere after confirming the URL serves an image."""
    image_url = (body.image_url or "").strip()
    if not image_url:
        raise BadRequest("Image URL is required", code="MISSING_IMAGE_URL")

    tags = body.tags if isinstance(body.tags, list) else []
    # Text limits are checked before the outbound HEAD request.
    normalize_metadata(body.title, body.description, tags)
    await validator.ensure_valid(image_url)

    fields = normalize_image_fields(
        image_url,
        title=body.title,
        description=body.description,
        tags=tags,
    )
    image = persist_image(db, user, fields)
    logger.info("User %s added image %s from URL", user.id, image.id)
    return serialize_image(image)


@router.post("/images/upload", response_model=dict, status_code=201, operation_id="add_image_by_upload")
async def add_image_by_upload(
    request: Request,
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    user: User = Depends(ensure_authenticated),
    db: Session = Depends(get_db),
    storage: UploadStorageProvider = Depends(get_upload_storage),
):
    """Store an uploaded image file and add it as a local upload."""
    if file is None or not (file.filename or "").strip():
        raise BadRequest("No image file uploaded", code="NO_FILE")

    # Metadata is checked before anything is written to disk.
    metadata = normalize_metadata(title, description, parse_tags_json(tags))

    stored = await storage.save(file)
    image_url = storage.public_url(str(request.base_url), stored.filename)
    try:
        image = persist_image(
            db,
            user,
            ImageFields(
                image_url=image_url,
                title=metadata.title,
                description=metadata.description,
                tags=metadata.tags,
            ),
            storage_key=stored.filename,
        )
    except Exception:
        db.rollback()
        storage.remove(stored.filename)
        raise

    logger.info("User %s uploaded image %s (%s bytes)", user.id, image.id, stored.size)
    return serialize_image(image)
