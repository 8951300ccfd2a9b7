"""FieldLedger API Configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"  # Ignore extra fields from .env
    )

    DB_PATH: str = "data/fieldledger.db"
    TIMEZONE: str = "America/Sao_Paulo"  # IANA zone for month/week/day boundaries

    # Auth
    JWT_SECRET_KEY: str = "CHANGE_THIS_IN_PRODUCTION_12345678901234567890"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    MAX_FAILED_LOGINS: int = 5
    LOCKOUT_MINUTES: int = 15

    # Photo storage
    STORAGE_DIR: str = "data/storage"
    PHOTO_BUCKET: str = "task-photos"
    SIGNED_URL_TTL_S: int = 3600
    MAX_PHOTO_BYTES: int = 10 * 1024 * 1024

    # Tasks finishing more than this fraction over presumed hours are flagged
    PRESUMED_TOLERANCE: float = 0.15

    LOGS_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"  # comma-separated


settings = Settings()
