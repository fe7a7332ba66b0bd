"""Application settings and environment configuration."""

from typing import Optional
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "Pinboard"
    debug: bool = False
    environment: str = "dev"  # 'dev' or 'prod'
    log_level: str = "INFO"

    # Database
    database_url: str = f"sqlite:///{BASE_DIR / 'pinboard.db'}"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800
    db_pool_pre_ping: bool = True
    db_connect_timeout: int = 10

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_workers: int = 1

    # Browser client allowed to send credentialed requests
    client_origin: str = "http://localhost:5173"

    # Uploads
    uploads_dir: Optional[str] = None
    max_upload_bytes: int = 10 * 1024 * 1024
    upload_chunk_bytes: int = 64 * 1024

    # Remote image URL validation
    image_url_timeout_seconds: float = 5.0

    # Sessions
    session_cookie_name: str = "pinboard_session"
    session_ttl_seconds: int = 24 * 60 * 60

    # Firebase Authentication
    firebase_project_id: Optional[str] = None
    firebase_jwks_url: str = (
        "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
    )
    jwks_ttl_seconds: int = 60 * 60
    allowed_sign_in_provider: str = "github"

    @property
    def uploads_path(self) -> Path:
        """Directory holding locally stored uploads."""
        if self.uploads_dir:
            return Path(self.uploads_dir)
        return BASE_DIR / "uploads"

    @property
    def firebase_issuer(self) -> Optional[str]:
        """Expected `iss` claim of Firebase ID tokens."""
        if not self.firebase_project_id:
            return None
        return f"https://securetoken.google.com/{self.firebase_project_id}"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "dev"


settings = Settings()
