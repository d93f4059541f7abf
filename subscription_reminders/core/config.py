import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True, slots=True)
class ReminderSettings:
    """Tunables of the reminder workflow."""

    lead_days: int = 3
    token_expiry_days: int = 7
    workers: int = 4

    def __post_init__(self) -> None:
        if self.lead_days < 0:
            raise ValueError("lead_days must not be negative")
        if self.token_expiry_days <= 0:
            raise ValueError("token_expiry_days must be positive")
        if self.workers <= 0:
            raise ValueError("workers must be positive")


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/app.db")).resolve()
        self.reminder_lead_days = self._get_int("REMINDER_LEAD_DAYS", default=3)
        self.reminder_token_expiry_days = self._get_int("REMINDER_TOKEN_EXPIRY_DAYS", default=7)
        self.reminder_workers = self._get_int("REMINDER_WORKERS", default=4)
        self.frontend_base_url = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000")
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL", "")
        self.smtp_from_name = os.getenv("SMTP_FROM_NAME", "Subscription Reminders")
        self.smtp_timeout_seconds = self._get_int("SMTP_TIMEOUT_SECONDS", default=10)
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @property
    def reminders(self) -> ReminderSettings:
        try:
            return ReminderSettings(
                lead_days=self.reminder_lead_days,
                token_expiry_days=self.reminder_token_expiry_days,
                workers=self.reminder_workers,
            )
        except ValueError as exc:
            raise RuntimeError(f"Invalid reminder configuration: {exc}") from exc

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
