"""Test configuration and fixtures."""

import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pinboard.auth.jwt import VerifiedIdentity
from pinboard.auth.models import User
from pinboard.errors import InvalidToken, UnsupportedProvider
from pinboard.metadata import Base, Image
from pinboard.storage import LocalDiskStorageProvider

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


class FakeVerifier:
    """Stands in for FirebaseTokenVerifier: tokens map to identities.

    Tokens in ``identities`` verify, tokens in ``other_provider`` fail the
    provider allow-list, anything else is an invalid token.
    """

    def __init__(self):
        self.identities: Dict[str, VerifiedIdentity] = {}
        self.other_provider = set()
        self.calls = []

    def add(
        self,
        token: str,
        uid: str,
        *,
        display_name: Optional[str] = "Octo Cat",
        email: Optional[str] = "octo@example.com",
        avatar_url: Optional[str] = "https://avatars.example.com/octo.png",
    ) -> VerifiedIdentity:
        identity = VerifiedIdentity(
            uid=uid,
            email=email,
            display_name=display_name,
            avatar_url=avatar_url,
            provider="github.com",
        )
        self.identities[token] = identity
        return identity

    async def verify(self, token: str) -> VerifiedIdentity:
        self.calls.append(token)
        if token in self.other_provider:
            raise UnsupportedProvider()
        identity = self.identities.get(token)
        if identity is None:
            raise InvalidToken("Token verification failed: bad signature")
        return identity

    async def get_jwks(self):
        return {"keys": []}


def image_head_handler(request: httpx.Request) -> httpx.Response:
    """HEAD responses keyed by the last path segment of the requested URL."""
    name = request.url.path.rsplit("/", 1)[-1]
    if name.startswith("missing"):
        return httpx.Response(404)
    if name.startswith("timeout"):
        raise httpx.ConnectTimeout("timed out", request=request)
    if name.endswith((".html", ".txt")):
        return httpx.Response(200, headers={"content-type": "text/html"})
    return httpx.Response(200, headers={"content-type": "image/jpeg"})


@pytest.fixture
def test_db():
    """Create test database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def upload_storage(tmp_path) -> LocalDiskStorageProvider:
    return LocalDiskStorageProvider(
        tmp_path / "uploads",
        max_bytes=1024,
        chunk_size=64,
    )


@pytest.fixture
def client(test_db: Session, verifier: FakeVerifier, upload_storage: LocalDiskStorageProvider):
    """TestClient with the database, verifier, HEAD target and upload dir swapped out."""
    from pinboard.api import app, build_state_handles
    from pinboard.dependencies import get_db
    from pinboard.ratelimit import limiter

    def override_get_db():
        yield test_db

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(image_head_handler))
    build_state_handles(app, http_client)
    app.state.verifier = verifier
    app.state.upload_storage = upload_storage
    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


def create_user(
    db: Session,
    username: str = "octocat",
    *,
    role: str = "user",
    firebase_uid: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> User:
    user = User(
        firebase_uid=firebase_uid or f"uid-{uuid.uuid4()}",
        username=username,
        display_name=username.title(),
        email=f"{username}@example.com",
        avatar_url=f"https://avatars.example.com/{username}.png",
        role=role,
    )
    if created_at is not None:
        user.created_at = created_at
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_image(
    db: Session,
    owner: User,
    *,
    image_url: str = "https://cdn.example.com/pic.jpg",
    storage_key: Optional[str] = None,
    title: str = "",
    description: str = "",
    tags=None,
    age_minutes: int = 0,
) -> Image:
    from pinboard.image import build_search_text

    tags = list(tags or [])
    image = Image(
        image_url=image_url,
        storage_key=storage_key,
        title=title,
        description=description,
        tags=tags,
        user_id=owner.id,
        search_text=build_search_text(title, description, tags),
        created_at=datetime(2026, 1, 1, 12, 0) - timedelta(minutes=age_minutes),
    )
    db.add(image)
    db.commit()
    db.refresh(image)
    return image


def sign_in(client: TestClient, verifier: FakeVerifier, token: str = "good-token", uid: str = "fb-octo", **identity):
    """Exchange a fake ID token for a session cookie held by ``client``."""
    verifier.add(token, uid, **identity)
    response = client.post("/api/auth/firebase-auth", json={"idToken": token})
    assert response.status_code == 200, response.text
    return response.json()
