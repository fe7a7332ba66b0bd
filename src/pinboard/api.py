"""FastAPI application entry point."""

import logging

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session

from pinboard.auth.jwt import FirebaseTokenVerifier
from pinboard.database import init_db
from pinboard.dependencies import get_db
from pinboard.errors import CredentialError, register_exception_handlers
from pinboard.image import ImageUrlValidator
from pinboard.ratelimit import limiter
from pinboard.settings import settings
from pinboard.storage import UPLOADS_URL_PREFIX, create_storage_provider

# Import all routers
from pinboard.routers import auth, images

logging.basicConfig(
    level=getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Image pinning API: save images by URL or upload, browse and search them",
    version="0.1.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app, expose_details=settings.is_development)


def build_state_handles(target: FastAPI, http_client: httpx.AsyncClient) -> None:
    """Attach the long-lived handles endpoints receive through dependencies."""
    target.state.http_client = http_client
    target.state.verifier = FirebaseTokenVerifier(
        http_client,
        project_id=settings.firebase_project_id,
        jwks_url=settings.firebase_jwks_url,
        allowed_provider=settings.allowed_sign_in_provider,
    )
    target.state.image_url_validator = ImageUrlValidator(
        http_client,
        timeout=settings.image_url_timeout_seconds,
    )
    target.state.upload_storage = create_storage_provider(settings)


@app.on_event("startup")
async def create_state_handles():
    """Create the shared HTTP client and everything built on it."""
    build_state_handles(app, httpx.AsyncClient())


@app.on_event("startup")
async def create_tables():
    """Create missing tables; fatal in development only."""
    try:
        init_db()
    except Exception:
        logger.exception("Database initialization failed")
        if not settings.is_production:
            raise


@app.on_event("startup")
async def warm_jwks_cache():
    """Pre-fetch JWKS on startup so the first sign-in isn't blocked."""
    if not settings.firebase_project_id:
        logger.warning("FIREBASE_PROJECT_ID is not set; bearer tokens will be rejected")
        return
    try:
        await app.state.verifier.get_jwks()
    except CredentialError as e:
        # Non-fatal: requests will fetch on demand
        logger.warning("Could not pre-fetch Firebase signing keys: %s", e.message)


@app.on_event("shutdown")
async def close_http_client():
    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()


app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_origin],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def allow_cross_origin_uploads(request: Request, call_next):
    """Let any origin embed stored uploads."""
    response = await call_next(request)
    if request.url.path.startswith(UPLOADS_URL_PREFIX):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
    return response


# Register all routers
app.include_router(auth.router)
app.include_router(images.router)

# Uploads directory is created by init-db or on the first upload
app.mount(
    UPLOADS_URL_PREFIX.rstrip("/"),
    StaticFiles(directory=settings.uploads_path, check_dir=False),
    name="uploads",
)


@app.get("/")
async def root():
    return {"status": "ok", "message": "Pinboard API is running"}


# Health check endpoint
@app.get("/api/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint with DB connectivity verification."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"Database unavailable: {exc}")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pinboard.api:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.debug
    )
