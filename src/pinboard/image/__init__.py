"""Image field normalization and remote image URL validation."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

import httpx

from pinboard.errors import InvalidImageUrl, MalformedTags, ValidationFailed

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_TAG_LENGTH = 30

# Scheme, host, then an optional path of word characters, dots, dashes and slashes.
IMAGE_URL_PATTERN = re.compile(r"^https?://[\w.-]+[/\w.-]*$")
_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


@dataclass
class ImageMetadataFields:
    title: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class ImageFields(ImageMetadataFields):
    image_url: str = ""

    @property
    def search_text(self) -> str:
        return build_search_text(self.title, self.description, self.tags)


def normalize_image_url(image_url: str) -> str:
    """Trim the URL and prefix ``https://`` when no http(s) scheme is present."""
    url = (image_url or "").strip()
    if url and not _SCHEME_PATTERN.match(url):
        url = f"https://{url}"
    return url


def normalize_tags(tags: Optional[Iterable[Any]]) -> List[str]:
    """Trim and lowercase tags, dropping empty ones.

    Raises:
        ValidationFailed: A tag is not a string or is longer than 30 characters
    """
    normalized: List[str] = []
    for tag in tags or []:
        if not isinstance(tag, str):
            raise ValidationFailed("Tags must be strings")
        value = tag.strip().lower()
        if not value:
            continue
        if len(value) > MAX_TAG_LENGTH:
            raise ValidationFailed(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
        normalized.append(value)
    return normalized


def normalize_metadata(
    title: Optional[str],
    description: Optional[str],
    tags: Optional[Iterable[Any]],
) -> ImageMetadataFields:
    """Trim and check title, description and tags against the schema limits."""
    clean_title = (title or "").strip()
    clean_description = (description or "").strip()
    if len(clean_title) > MAX_TITLE_LENGTH:
        raise ValidationFailed(f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
    if len(clean_description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationFailed(f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")
    return ImageMetadataFields(
        title=clean_title,
        description=clean_description,
        tags=normalize_tags(tags),
    )


def normalize_image_fields(
    image_url: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    tags: Optional[Iterable[Any]] = None,
) -> ImageFields:
    """Produce the exact values an Image row is persisted with."""
    url = normalize_image_url(image_url)
    if not url:
        raise ValidationFailed("Image URL is required")
    metadata = normalize_metadata(title, description, tags)
    return ImageFields(
        image_url=url,
        title=metadata.title,
        description=metadata.description,
        tags=metadata.tags,
    )


def build_search_text(title: str, description: str, tags: Iterable[str]) -> str:
    """Lowercase document searched by free-text queries."""
    parts = [title or "", description or "", " ".join(tags or [])]
    return " ".join(part.strip() for part in parts if part and part.strip()).lower()


def parse_tags_json(raw: Optional[str]) -> List[Any]:
    """Parse the multipart ``tags`` field, a JSON-encoded array.

    Raises:
        MalformedTags: The value is not valid JSON or not an array
    """
    if raw is None or not raw.strip():
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        raise MalformedTags()
    if not isinstance(parsed, list):
        raise MalformedTags()
    return parsed


def is_well_formed_image_url(url: str) -> bool:
    return bool(url) and IMAGE_URL_PATTERN.match(url) is not None


class ImageUrlValidator:
    """Confirm a remote URL serves an image by issuing a HEAD request.

    No retries: a timeout or connection failure is reported straight back.
    """

    def __init__(self, http_client: httpx.AsyncClient, *, timeout: float = 5.0):
        self.http_client = http_client
        self.timeout = timeout

    async def is_valid(self, url: str) -> bool:
        if not is_well_formed_image_url(url):
            return False

        try:
            response = await self.http_client.head(
                url,
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.info("Error validating image URL %s: %s", url, e)
            return False

        if response.status_code >= 400:
            logger.info("Image URL %s answered HEAD with %s", url, response.status_code)
            return False

        content_type = (response.headers.get("content-type") or "").strip().lower()
        return content_type.startswith("image/")

    async def ensure_valid(self, url: str) -> None:
        """Raise InvalidImageUrl unless ``url`` is a reachable image."""
        if not await self.is_valid(url):
            raise InvalidImageUrl()
