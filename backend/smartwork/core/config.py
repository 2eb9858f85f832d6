# backend/smartwork/core/config.py

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_env: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./smartwork.db"

    # Comma-separated allowlist, e.g. "https://smartwork.example.com,http://localhost:5173"
    cors_origins: str = ""
    frontend_url: str = "http://localhost:5173"

    # request-created notices go to this fixed mailbox
    admin_notification_email: str = "admin@example.com"

    email_from: Optional[str] = None
    email_from_name: str = "SmartWork"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_fallback_host: str = "smtp.gmail.com"
    smtp_timeout_seconds: float = 15.0
    sendgrid_api_key: Optional[str] = None

    notification_workers: int = 4

    password_max_age_months: int = 4
    temp_password_length: int = 10
    id_allocation_retries: int = 5

    bootstrap_admin_username: str = "admin"
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    class Config:
        env_file = ".env"

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, v: str) -> str:
        # Render/Heroku hand out postgres:// which SQLAlchemy no longer accepts
        if v.startswith("postgres://"):
            return "postgresql://" + v[len("postgres://"):]
        return v

    def allowed_origins(self) -> list[str]:
        if self.cors_origins.strip():
            return [o.strip().rstrip("/") for o in self.cors_origins.split(",") if o.strip()]
        return list({self.frontend_url.strip().rstrip("/"), "http://localhost:5173"})

    def sender_address(self) -> Optional[str]:
        return self.email_from or self.smtp_username


settings = Settings()
