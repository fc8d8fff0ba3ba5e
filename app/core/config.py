"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database (DATABASE_URL wins over the POSTGRES_* parts)
    database_url: Optional[str] = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "hr_user"
    postgres_password: str = "password"
    postgres_db: str = "hr_db"
    auto_create_tables: bool = True

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 15
    bcrypt_rounds: int = 12

    # Two-factor login
    two_factor_enabled: bool = True
    two_factor_ttl_seconds: int = 300

    # App
    app_name: str = "Human Resource System"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    web_origin: str = "http://localhost:5173"
    api_url: str = "http://localhost:8000"
    support_email: str = "support@example.com"

    # Storage
    upload_dir: str = "uploads"
    max_upload_size_mb: int = 10
    max_upload_files: int = 5
    email_templates_path: str = "data/email-templates.json"

    # SMTP
    email_host: str = ""
    email_port: int = 587
    email_secure: bool = False
    email_user: str = ""
    email_password: str = ""
    email_from: str = ""

    # Bootstrap admin account (created at startup when both are set)
    admin_email: str = ""
    admin_password: str = ""

    @property
    def sqlalchemy_url(self) -> str:
        """Construct database connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.web_origin.split(",") if o.strip()]

    @property
    def email_configured(self) -> bool:
        return bool(self.email_host and (self.email_from or self.email_user))

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
