"""
This module contains the runtime configuration for the VehiQuest service.
"""
import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """
    Settings for the API, the worker and the collaborators they talk to.

    Every value can be overridden through the environment (or a `.env` file).
    """
    database_url: str = "sqlite+aiosqlite:///vehiquest.db"
    access_token_secret: str = "change-me"
    token_issuer_key: str | None = None
    token_expire_days: int = 365
    environment: str = "development"
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:5174"]
    )
    broker_url: str = "redis://localhost:6379/0"
    result_backend: str = "redis://localhost:6379/1"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    payment_secret_key: str | None = None
    sold_out_threshold: int = 60
    log_level: str = "INFO"

    @property
    def production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            access_token_secret=os.getenv("ACCESS_TOKEN_SECRET", defaults.access_token_secret),
            token_issuer_key=os.getenv("TOKEN_ISSUER_KEY"),
            token_expire_days=int(os.getenv("TOKEN_EXPIRE_DAYS", defaults.token_expire_days)),
            environment=os.getenv("NODE_ENV") or os.getenv("ENVIRONMENT", defaults.environment),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "")) or defaults.cors_origins,
            broker_url=os.getenv("BROKER_URL", defaults.broker_url),
            result_backend=os.getenv("RESULT_BACKEND", defaults.result_backend),
            smtp_host=os.getenv("SMTP_HOST", defaults.smtp_host),
            smtp_port=int(os.getenv("SMTP_PORT", defaults.smtp_port)),
            smtp_user=os.getenv("SMTP_USER"),
            smtp_password=os.getenv("SMTP_PASSWORD"),
            payment_secret_key=os.getenv("PAYMENT_SECRET_KEY"),
            sold_out_threshold=int(os.getenv("SOLD_OUT_THRESHOLD", defaults.sold_out_threshold)),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )


@lru_cache
def get_settings() -> Settings:
    """
    Returns the settings loaded from the environment, cached for the process.
    """
    return Settings.from_env()
