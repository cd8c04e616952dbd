"""Application configuration."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Environment
    env: str = os.getenv("APP_ENV", "development")
    api_secret_key: str = os.getenv("API_SECRET_KEY", "dev-secret-key")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    # Default uses local socket connection with trust auth
    database_url: str = os.getenv(
        "DATABASE_URL", "postgresql:///shiftboard?user=postgres"
    )

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379")

    # Notifications (Resend transactional email)
    resend_api_key: str | None = os.getenv("RESEND_API_KEY")
    resend_api_url: str = os.getenv("RESEND_API_URL", "https://api.resend.com")
    notification_from_email: str = os.getenv(
        "NOTIFICATION_FROM_EMAIL", "L7 Shift <no-reply@l7shift.com>"
    )
    portal_url: str = os.getenv("PORTAL_URL", "https://l7shift.com/portal")
    notification_max_attempts: int = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "5"))
    notification_batch_size: int = int(os.getenv("NOTIFICATION_BATCH_SIZE", "20"))
    notification_sweep_seconds: float = float(
        os.getenv("NOTIFICATION_SWEEP_SECONDS", "300")
    )
    # A row left in sending longer than this is assumed abandoned by its drainer
    notification_lease_seconds: float = float(
        os.getenv("NOTIFICATION_LEASE_SECONDS", "600")
    )

    # Agent task coordination
    available_tasks_default_limit: int = int(
        os.getenv("AVAILABLE_TASKS_DEFAULT_LIMIT", "20")
    )
    available_tasks_max_limit: int = int(os.getenv("AVAILABLE_TASKS_MAX_LIMIT", "50"))
    # When false an agent holding an active task cannot claim a second one
    allow_multiple_claims: bool = _env_flag("ALLOW_MULTIPLE_CLAIMS")


settings = Settings()
