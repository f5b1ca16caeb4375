"""
Configuration management for MediCare Reminder
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "MediCareReminder"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./medicare_reminder.db"
    DATABASE_ECHO: bool = False

    # Prescription extraction (OpenAI-compatible chat completions gateway)
    EXTRACTION_API_KEY: Optional[str] = None
    EXTRACTION_API_URL: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    EXTRACTION_MODEL: str = "google/gemini-2.5-flash"
    EXTRACTION_TIMEOUT_SECONDS: float = 60.0

    # Caretaker email (Resend)
    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = "MediCare Reminder <onboarding@resend.dev>"

    # Reminders
    REMINDERS_ENABLED: bool = True
    REMINDER_FOLLOW_UP_MINUTES: int = 10
    NOTIFICATIONS_PERMITTED: bool = True
    NOTIFICATION_INBOX_LIMIT: int = 100
    REMINDER_HISTORY_LIMIT: int = 1000

    # Policy: pending doses older than this are auto-marked missed (None = off)
    AUTO_MISS_AFTER_MINUTES: Optional[int] = None

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class AdherenceConfig:
    """Constants for the adherence engine"""

    # Quick-confirm guard
    QUICK_CONFIRM_THRESHOLD_MS: int = 3000
    MAX_CARD_SESSIONS: int = 1000

    # Scoring
    SUSPECTED_CREDIT: float = 0.5
    STREAK_LOOKBACK_DAYS: int = 30
    WEEKLY_WINDOW_DAYS: int = 7
    SCORE_WINDOW_DAYS: int = 30
    RECENT_HISTORY_LIMIT: int = 20

    # Schedule
    DEFAULT_SLOT_TIMES: dict[str, str] = {
        "morning": "08:00",
        "afternoon": "13:00",
        "night": "21:00",
    }

    # Cosmetic color tags assigned at medicine creation
    MEDICINE_COLORS: list[str] = [
        "primary", "secondary", "accent", "lavender", "sunny", "care"
    ]

    # Prescription extraction
    MAX_EXTRACTED_MEDICINES: int = 15

    # Weekly report thresholds
    REPORT_GOOD_SCORE: int = 80
    REPORT_FAIR_SCORE: int = 50


settings = get_settings()
adherence_config = AdherenceConfig()
