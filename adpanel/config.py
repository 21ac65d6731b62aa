"""
Application configuration using environment variables.
"""
import os
import secrets
from functools import lru_cache
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Advertising Panel API"
    debug: bool = False
    environment: str = "development"
    port: int = 4000

    # Security
    secret_key: str = os.getenv("JWT_SECRET", secrets.token_urlsafe(32))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 1 day
    refresh_token_expire_days: int = 7
    admin_emails: List[str] = []

    # Database
    database_url: Optional[str] = None
    db_host: Optional[str] = None
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "advertising_panel"
    db_pool_size: int = 10

    # Links
    domain: str = "http://localhost:4000"
    link_ttl_days: int = 30
    link_code_max_attempts: int = 50

    # Media
    upload_dir: str = "./uploads"

    # Payment gateway
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    payment_currency: str = "INR"
    gateway_timeout: float = 15.0

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Rate limiting
    login_rate_limit: str = "5/minute"
    register_rate_limit: str = "3/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def sqlalchemy_url(self):
        """DATABASE_URL wins; otherwise DB_HOST selects MySQL, else local SQLite."""
        if self.database_url:
            return self.database_url
        if self.db_host:
            return URL.create(
                "mysql+pymysql",
                username=self.db_user,
                password=self.db_password or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
            )
        return "sqlite:///./advertising_panel.db"

    def public_link(self, code: str) -> str:
        return f"{self.domain.rstrip('/')}/{code}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate secret key on startup
settings = get_settings()
if settings.environment == "production" and "JWT_SECRET" not in os.environ and "SECRET_KEY" not in os.environ:
    raise ValueError(
        "SECRET_KEY must be set in production! "
        "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
