from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    cors_allow_origins: str = Field(
        default="http://localhost:5173,http://localhost:5174",
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of allowed browser origins (no wildcards in production).",
    )
    dev_mode: bool = Field(default=True, alias="DEV_MODE")
    org_timezone: str = Field(default="America/Toronto", alias="ORG_TIMEZONE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Availability checker
    availability_cache_seconds: int = Field(default=300, alias="AVAILABILITY_CACHE_SECONDS")
    enforce_weekly_exclusivity: bool = Field(default=True, alias="ENFORCE_WEEKLY_EXCLUSIVITY")

    # Outgoing mail (notifications are skipped silently when SMTP_HOST is unset)
    smtp_host: Optional[str] = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_username: Optional[str] = Field(default=None, alias="SMTP_USERNAME")
    smtp_password: Optional[str] = Field(default=None, alias="SMTP_PASSWORD")
    smtp_tls: bool = Field(default=True, alias="SMTP_TLS")
    mail_from: str = Field(default='"Workforce Manager" <no-reply@example.com>', alias="MAIL_FROM")

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
