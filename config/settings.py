"""Application settings and configuration management."""
from __future__ import annotations

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    LLM_CONFIG_PATH: str = "app_config.json"

    AUTH_SECRET: str = ""
    AUTH_ALGORITHMS: List[str] = Field(default_factory=lambda: ["HS256"])
    AUTH_AUDIENCE: Optional[str] = None
    AUTH_ISSUER: Optional[str] = None

    EMAIL_API_URL: Optional[str] = None
    EMAIL_API_KEY_ENV: str = "EMAIL_API_KEY"
    EMAIL_SENDER: str = "Interview Practice <no-reply@localhost>"
    EMAIL_TIMEOUT_S: float = 10.0

    MAX_QUESTION_COUNT: int = Field(default=15, ge=1)
    MINUTES_PER_QUESTION: int = Field(default=3, ge=1)
    STRENGTH_SCORE: int = Field(default=70, ge=0, le=100)
    WEAK_QUESTION_SCORE: int = Field(default=50, ge=0, le=100)
    RECOMMENDATION_THRESHOLD: float = Field(default=75.0, ge=0.0, le=100.0)
    NEUTRAL_SCORE: int = Field(default=50, ge=0, le=100)

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", validate_assignment=True)


settings = Settings()
