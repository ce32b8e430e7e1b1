from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    api_version: str = Field("v1", alias="API_VERSION")
    environment: str = Field("development", alias="ENVIRONMENT")
    frontend_url: str = Field("http://localhost:8080", alias="FRONTEND_URL")
    port: int = Field(3001, alias="PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    tz: str = Field("UTC", alias="TZ")

    upload_dir: str = Field("uploads", alias="UPLOAD_DIR")
    max_file_size: int = Field(10 * 1024 * 1024, alias="MAX_FILE_SIZE")
    cleanup_max_age_days: int = Field(7, alias="CLEANUP_MAX_AGE_DAYS")
    cleanup_interval_minutes: int = Field(60, alias="CLEANUP_INTERVAL_MINUTES")
    ocr_languages: str = Field("eng", alias="OCR_LANGUAGES")

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_dir).resolve()

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
