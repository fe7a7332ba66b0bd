"""Pinboard API routers package."""

from . import auth
from . import images

__all__ = [
    "auth",
    "images",
]
