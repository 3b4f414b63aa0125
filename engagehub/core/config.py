"""
Application configuration using Pydantic Settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "EngageHub API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "engagehub"
    # Full URI including the database path; takes precedence over MONGO_URI + MONGO_DB_NAME.
    MONGODB_URI: str = ""

    # JWT (tokens are issued by the auth service, we only verify them)
    JWT_SECRET_KEY: str = "your-super-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"

    # Admin
    ADMIN_API_KEY: str = ""

    # Prediction jobs
    JOBS_MAX_INPUT_BYTES: int = 20_000
    JOBS_ERROR_MAX_CHARS: int = 2000
    JOBS_LIST_MAX_LIMIT: int = 100
    JOBS_ADMIN_LIST_MAX_LIMIT: int = 200
    # 0 disables start-up recovery of jobs stuck in "processing".
    JOBS_STALE_PROCESSING_MINUTES: int = 0

    # Worker
    WORKER_MAX_ATTEMPTS: int = 5
    WORKER_BASE_BACKOFF_SEC: int = 5
    # Upper bound on a single retry delay (before jitter); 0 = no cap
    WORKER_MAX_BACKOFF_SEC: int = 86_400
    WORKER_POLL_INTERVAL_MS: int = 5000
    # 0 = do not expose worker metrics over HTTP
    WORKER_METRICS_PORT: int = 0

    # Prediction executor (virality model)
    PREDICTOR_PYTHON: str = "python3"
    PREDICTOR_SCRIPT: str = "ai/virality.py"
    PREDICTOR_TIMEOUT_SEC: float = 0  # 0 = wait indefinitely

    # Celery (optional driver)
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_DEFAULT_QUEUE: str = "engagehub-default"
    CELERY_TASK_TIME_LIMIT: int = 0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"



@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
