import secrets

from pydantic_settings import BaseSettings


def _generate_dev_secret() -> str:
    """Generate a random secret for local development only."""
    return secrets.token_hex(32)


class Settings(BaseSettings):
    # App
    app_name: str = "StudyMate"
    debug: bool = False
    environment: str = "development"  # development, production
    log_level: str = ""  # DEBUG, INFO, WARNING, ERROR, CRITICAL (empty = auto based on environment)
    log_to_file: bool = True

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./studymate.db"

    # JWT (tokens are issued elsewhere; we only decode them)
    secret_key: str = ""
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # CORS (comma-separated origins, empty = local defaults)
    allowed_origins: str = ""
    frontend_url: str = "http://localhost:5173"

    # Anthropic Claude
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    generation_max_tokens: int = 4000

    # Generation retry policy
    generation_max_attempts: int = 3
    generation_retry_base_delay: float = 1.0  # seconds, multiplied by attempt number
    generation_timeout_seconds: float = 120.0  # per attempt, 0 = no timeout

    # Content limits
    max_chunk_size: int = 4000  # characters
    max_chunks: int = 50
    max_upload_size_mb: int = 20
    image_max_dimension: int = 0  # px, 0 = send images untouched

    # Study materials
    default_language: str = "en"
    default_user_credits: int = 10

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

# Validate secret key
_KNOWN_WEAK_KEYS = {"your-secret-key-change-in-production", "changeme", "secret", ""}

if settings.secret_key in _KNOWN_WEAK_KEYS:
    if settings.environment == "production":
        raise RuntimeError(
            "SECRET_KEY is not set or uses a known weak default. "
            "Set a strong SECRET_KEY env var (e.g. `openssl rand -hex 32`)."
        )
    # Development: generate a random key so the app can start
    settings.secret_key = _generate_dev_secret()
