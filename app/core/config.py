# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,  # Environment vars are uppercase
        extra="ignore",      # Ignore unexpected vars instead of raising
    )

    # Core application settings
    DATABASE_URL: str
    HOST: str = "0.0.0.0"
    PORT: int = 8101
    DEBUG: bool = False
    SQL_ECHO: bool = False
    ENVIRONMENT: str = "development"
    APP_URL: str = "http://localhost:3000"
    LOG_FILE: str | None = "app.log"

    # CORS settings
    ALLOWED_ORIGINS: list[str] = ["*"]  # In production, specify actual origins
    ALLOW_CREDENTIALS: bool = True
    ALLOWED_METHODS: list[str] = ["*"]
    ALLOWED_HEADERS: list[str] = ["*"]

    # Identity provider tokens (we only verify, never issue)
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60

    # Email sender settings (Resend)
    RESEND_API_KEY: str | None = None
    RESEND_FROM_EMAIL: str = "simulazioni@leonardoschool.it"
    EMAIL_NOTIFICATIONS_ENABLED: bool = False

    # Simulation scoring defaults
    DEFAULT_CORRECT_POINTS: float = 1.5
    DEFAULT_WRONG_POINTS: float = -0.4
    DEFAULT_BLANK_POINTS: float = 0.0

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100


def _validate_settings(settings: Settings) -> None:
    """Validate critical application settings."""
    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL is required")
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET is required")
    if settings.DEFAULT_WRONG_POINTS > 0:
        raise ValueError("DEFAULT_WRONG_POINTS must be negative or zero")

    # Environment-specific validations
    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        print("WARNING: DEBUG is enabled in production. Consider setting DEBUG=False.")
    if settings.EMAIL_NOTIFICATIONS_ENABLED and not settings.RESEND_API_KEY:
        raise ValueError("RESEND_API_KEY is required when EMAIL_NOTIFICATIONS_ENABLED is set")


# Initialize settings with error handling
try:
    settings = Settings()
    _validate_settings(settings)
except Exception as e:
    print(f"Error initializing settings: {e}")
    raise
