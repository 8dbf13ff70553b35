from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# your .env is in the project root (same level as "civic_requests/")
load_dotenv(Path(__file__).resolve().parents[2] / ".env")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Municipal Service Requests"
    env: str = "dev"
    log_level: str = "INFO"

    storage_backend: str = Field("mongo", pattern="^(mongo|memory)$")
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "municipality"
    storage_timeout_seconds: float = 5.0

    # legacy admin identity, honoured alongside the admin role
    admin_fallback_email: str = "admin@example.com"
    hide_forbidden_requests: bool = True

    upload_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    notification_queue_size: int = 100

    # comma separated
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @field_validator("admin_fallback_email")
    @classmethod
    def normalize_admin_email(cls, value: str) -> str:
        return value.strip().lower()

    def cors_origin_list(self) -> List[str]:
        return [i.strip() for i in self.cors_origins.split(",") if i.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
