"""Shared dependencies for FastAPI endpoints.

Long-lived handles (HTTP client, token verifier, URL validator, upload
storage) are built once at startup and stored on ``app.state``; these
dependencies hand them to endpoints so nothing reaches for a module global.
"""

import httpx
from fastapi import Request

from pinboard.auth.jwt import FirebaseTokenVerifier
from pinboard.database import get_db
from pinboard.image import ImageUrlValidator
from pinboard.storage import UploadStorageProvider

__all__ = [
    "get_db",
    "get_http_client",
    "get_verifier",
    "get_image_url_validator",
    "get_upload_storage",
]


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_verifier(request: Request) -> FirebaseTokenVerifier:
    return request.app.state.verifier


def get_image_url_validator(request: Request) -> ImageUrlValidator:
    return request.app.state.image_url_validator


def get_upload_storage(request: Request) -> UploadStorageProvider:
    return request.app.state.upload_storage
