from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "qtrack"
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # In unit tests / CI we avoid long startup retries against external deps.
    ENSURE_EXTERNAL_DEPS_ON_STARTUP: bool = True

    DATABASE_URL: str

    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TASK_ALWAYS_EAGER: bool = False
    DEADLINE_CHECK_INTERVAL_SECONDS: int = 3600

    # Shared secret for the external scheduler hitting /cron/*
    CRON_API_KEY: str = "change-me-cron-key"

    INVITATION_TTL_DAYS: int = 7

    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_BUCKET: str = "qtrack"
    MINIO_SECURE: bool = False
    # Fixed region keeps presigning offline (no bucket-location lookup).
    MINIO_REGION: str = "us-east-1"
    # Public base for storage URLs, e.g. "https://cdn.example.com"; bucket is appended
    MINIO_PUBLIC_URL: str | None = None

    UPLOAD_URL_TTL_SECONDS: int = 3600
    UPLOAD_MAX_BYTES: int = 100 * 1024 * 1024

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
