# procarni/core/settings.py
import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === General ===
    app_env: str = "local"  # local | development | production
    APP_NAME: str = "procarni-documents"

    # === Database ===
    DATABASE_URL: str = "sqlite:///./procarni.db"
    FETCH_TIMEOUT_SECONDS: float = 5.0

    # === Auth ===
    JWT_SECRET: str = "dev_secret_change_me_please"
    JWT_EXP_HOURS: int = 24

    # === Publisher (elevated storage identity) ===
    PUBLISHER_BACKEND: str = "local"  # local | s3
    PUBLISHER_BUCKET: Optional[str] = Field(None, description="Bucket for published documents")
    PUBLISHER_REGION: str = "us-east-1"
    PUBLISHER_ACCESS_KEY_ID: Optional[str] = None
    PUBLISHER_SECRET_ACCESS_KEY: Optional[str] = None
    PUBLISHER_ENDPOINT_URL: Optional[str] = None
    PUBLISHER_PUBLIC_BASE_URL: Optional[str] = None  # CDN / public bucket base
    LOCAL_STORAGE_ROOT: str = "./.local_storage"
    STORAGE_CONNECT_TIMEOUT: int = 3
    STORAGE_READ_TIMEOUT: int = 30

    # === E-mail (Postmark) ===
    POSTMARK_SERVER_TOKEN: Optional[str] = None
    POSTMARK_FROM: Optional[str] = None
    POSTMARK_REPLY_TO: Optional[str] = None
    MAIL_DRY_RUN: bool = False
    MAIL_TIMEOUT_SECONDS: float = 15.0

    # === WhatsApp ===
    WHATSAPP_COUNTRY_CODE: str = "58"
    WHATSAPP_BASE_URL: str = "https://wa.me"

    # === Locale ===
    DISPLAY_TIMEZONE: str = "America/Caracas"
    COMPANY_DISPLAY_NAME: str = "Procarni"

    # === Logging ===
    log_level: str = "INFO"

    # === CORS ===
    ALLOWED_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton Settings instance with simple env overrides."""
    s = Settings()

    env = os.getenv("ENVIRONMENT", s.app_env).lower()
    if env == "production":
        s.log_level = "WARNING"
    elif env == "development":
        s.log_level = "DEBUG"

    return s


settings = get_settings()
