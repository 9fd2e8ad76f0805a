import re

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Tableside"

    # --- Remote REST boundary ---
    API_BASE_URL: str = "http://localhost:3000"
    REQUEST_TIMEOUT: float = 10.0
    RESTAURANT_SLUG: str = "demo-restaurant"

    # --- Device storage ---
    STORAGE_BACKEND: str = "memory"  # memory | redis | sql
    REDIS_URL: str | None = None
    DATABASE_URL: str | None = None
    STORAGE_TTL: int | None = None  # seconds, None keeps values forever
    KEY_PREFIX: str = "tableside"

    # --- Staff routes ---
    STAFF_COOKIE_NAME: str = "tableside_access_token"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @field_validator("API_BASE_URL")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        url = value.strip().rstrip("/")
        if not re.match(r"^https?://", url, re.IGNORECASE):
            # Bare hosts: plain http for local development, https otherwise
            if "localhost" in url or url.startswith("127.0.0.1") or url.startswith(":"):
                url = f"http://{url}"
            else:
                url = f"https://{url}"
        return url

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in ("memory", "redis", "sql"):
            raise ValueError(f"unknown storage backend: {value}")
        return backend

settings = Settings()
