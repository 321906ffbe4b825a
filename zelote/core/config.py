from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_csv(value: Any, field: str) -> list[str]:
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Iterable):
        return [str(item).strip() for item in value if str(item).strip()]
    raise TypeError(f"{field} must be a comma separated string or list")


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Zelote"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent.parent / "data")
    TZ: str = "America/Sao_Paulo"

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)
    AUTH_ALLOW_API_KEY: bool = True

    APP_SECRET: str = "dev-insecure-secret-change-me"
    UI_USERNAME: str = "admin"
    UI_PASSWORD: str = "change-me"
    UI_PASSWORD_HASH: str = ""
    SESSION_COOKIE_NAME: str = "zelote_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 30

    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    # Each borrower type must use its institutional mailbox.
    STUDENT_EMAIL_DOMAIN: str = "@sj.g12.br"
    TEACHER_EMAIL_DOMAIN: str = "@sj.pro.br"
    STAFF_EMAIL_DOMAIN: str = "@colegiosaojudas.com.br"

    DEVICE_ID_PREFIX: str = "CHR"
    DUE_SOON_DAYS: int = 2
    OVERDUE_CHECK_INTERVAL_MIN: int = 30
    OVERDUE_NOTIFY_RECIPIENTS: Annotated[list[str], NoDecode] = Field(default_factory=list)
    NOTIFICATION_FEED_LIMIT: int = 20

    RESERVATION_NOTIFY_RECIPIENTS: Annotated[list[str], NoDecode] = Field(default_factory=list)
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com/emails"
    MAIL_FROM: str = "Zelote <onboarding@resend.dev>"
    MAIL_REDIRECTS: dict[str, str] = Field(default_factory=dict)

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'zelote.db'}"

    @property
    def templates_dir(self) -> Path:
        return self.BASE_DIR / "templates"

    def email_domain_for(self, user_type: str) -> str:
        return {
            "student": self.STUDENT_EMAIL_DOMAIN,
            "teacher": self.TEACHER_EMAIL_DOMAIN,
            "staff": self.STAFF_EMAIL_DOMAIN,
        }[user_type]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        return _split_csv(value, "ALLOWED_ORIGINS")

    @field_validator("RESERVATION_NOTIFY_RECIPIENTS", "OVERDUE_NOTIFY_RECIPIENTS", mode="before")
    @classmethod
    def parse_recipients(cls, value: Any) -> list[str]:
        return _split_csv(value, "recipients")


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
