"""Firebase ID token verification using Google's securetoken JWKS endpoint."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx
from jose import jwt, JWTError

from pinboard.errors import InvalidToken, UnsupportedProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    """External identity extracted from a verified Firebase ID token."""

    uid: str
    email: Optional[str]
    display_name: Optional[str]
    avatar_url: Optional[str]
    provider: str


class FirebaseTokenVerifier:
    """Verify Firebase ID tokens and enforce the sign-in provider allow-list.

    One instance is created at application startup with the shared HTTP
    client and kept on ``app.state``. The JWKS document is cached for
    ``jwks_ttl`` and concurrent cache misses share a single fetch.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        project_id: Optional[str],
        jwks_url: str,
        allowed_provider: str = "github",
        jwks_ttl: timedelta = timedelta(hours=1),
        algorithms: tuple = ("RS256",),
    ):
        self.http_client = http_client
        self.project_id = project_id
        self.jwks_url = jwks_url
        self.allowed_provider = allowed_provider.strip().lower()
        self.jwks_ttl = jwks_ttl
        self.algorithms = list(algorithms)
        self._jwks_cache: Dict[str, Any] = {}
        self._jwks_cache_time = datetime.min.replace(tzinfo=timezone.utc)
        self._jwks_inflight: Optional[asyncio.Task] = None

    @property
    def issuer(self) -> Optional[str]:
        if not self.project_id:
            return None
        return f"https://securetoken.google.com/{self.project_id}"

    async def _fetch_jwks(self) -> Dict[str, Any]:
        try:
            response = await self.http_client.get(self.jwks_url, timeout=10.0)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise InvalidToken(f"Failed to fetch signing keys: {e}")

    async def get_jwks(self) -> Dict[str, Any]:
        """Fetch and cache the JWKS document. Concurrent callers share a single fetch."""
        now = datetime.now(timezone.utc)
        if self._jwks_cache and now - self._jwks_cache_time < self.jwks_ttl:
            return self._jwks_cache

        if self._jwks_inflight is not None:
            return await self._jwks_inflight

        self._jwks_inflight = asyncio.ensure_future(self._fetch_jwks())
        try:
            self._jwks_cache = await self._jwks_inflight
            self._jwks_cache_time = datetime.now(timezone.utc)
            return self._jwks_cache
        finally:
            self._jwks_inflight = None

    def clear_jwks_cache(self) -> None:
        """Forget cached signing keys so the next verification refetches them."""
        self._jwks_cache = {}
        self._jwks_cache_time = datetime.min.replace(tzinfo=timezone.utc)

    async def decode(self, token: str) -> Dict[str, Any]:
        """Verify signature, expiry, audience and issuer; return the claims.

        Raises:
            InvalidToken: If the token cannot be verified for any reason
        """
        if not self.project_id:
            raise InvalidToken("Firebase project is not configured")
        if not token:
            raise InvalidToken("Token is empty")

        jwks = await self.get_jwks()
        try:
            claims = jwt.decode(
                token,
                jwks,
                algorithms=self.algorithms,
                audience=self.project_id,
                issuer=self.issuer,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_aud": True,
                    "verify_iss": True,
                },
            )
        except JWTError as e:
            raise InvalidToken(f"Token verification failed: {e}")

        if not claims.get("sub"):
            raise InvalidToken("Token has no subject")
        return claims

    async def verify(self, token: str) -> VerifiedIdentity:
        """Turn a bearer token into a verified identity.

        Raises:
            InvalidToken: Signature, expiry, audience or issuer check failed
            UnsupportedProvider: Token was issued for a provider other than the allowed one
        """
        claims = await self.decode(token)

        firebase_claims = claims.get("firebase") or {}
        provider = str(firebase_claims.get("sign_in_provider") or "").strip().lower()
        if not provider or self.allowed_provider not in provider:
            logger.info("Rejected sign-in provider %r for uid %s", provider, claims["sub"])
            raise UnsupportedProvider()

        return VerifiedIdentity(
            uid=str(claims["sub"]),
            email=claims.get("email") or None,
            display_name=claims.get("name") or None,
            avatar_url=claims.get("picture") or None,
            provider=provider,
        )
