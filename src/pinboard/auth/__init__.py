"""Firebase authentication module for Pinboard.

This module handles:
- Firebase ID token verification via Google's JWKS endpoint
- Lazy user creation and profile sync on sign-in
- Server-side sessions that spare repeat token verification
- Strict, permissive and ownership request gates
"""

from pinboard.auth.jwt import FirebaseTokenVerifier, VerifiedIdentity
from pinboard.auth.models import User, UserSession

__all__ = [
    "FirebaseTokenVerifier",
    "VerifiedIdentity",
    "User",
    "UserSession",
]
