from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    DATABASE_URL: str = "sqlite:///./homestay.db"

    # Security
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Application
    ENVIRONMENT: str = "development"
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    API_VERSION: str = "v1"
    API_TITLE: str = "Homestay Registration API"
    API_DESCRIPTION: str = "Application lifecycle and compliance engine for homestay registrations"

    # Features
    ENABLE_DOCS: bool = True
    ENABLE_REDOC: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # Monitoring
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # Capacity ceilings (HP Homestay Rules 2025)
    MAX_ROOMS_ALLOWED: int = 6
    MAX_BEDS_ALLOWED: int = 12
    MAX_BEDS_PER_ROOM: int = 6
    MIN_ROOM_RATE: float = 100.0

    # Workflow policy defaults (overridable through system_settings rows)
    CATEGORY_LOCK_TO_RECOMMENDED: bool = False
    INSPECTION_OPTIONAL_KINDS: list[str] = []
    CORRECTION_RESUBMIT_TARGET: str = "da"  # da -> under_scrutiny, dtdo -> dtdo_review
    LEGACY_FORWARD_ENABLED: bool = False
    EARLY_INSPECTION_WINDOW_DAYS: int = 7
    EARLY_INSPECTION_REASON_MIN_LENGTH: int = 15
    CORRECTION_REASON_MIN_LENGTH: int = 10
    CERTIFICATE_VALIDITY_YEARS: int = 1

    # Document upload policy
    MAX_DOCUMENT_SIZE_MB: int = 5
    MAX_PHOTO_SIZE_MB: int = 10
    MAX_TOTAL_UPLOAD_MB: int = 100
    REQUIRED_DOCUMENT_TYPES: list[str] = [
        "revenue_papers",
        "affidavit_section_29",
        "undertaking_form_c",
        "property_photo",
    ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
