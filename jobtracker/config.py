"""Centralized settings — all env vars and magic numbers live here."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Load .env before anything reads os.getenv
load_dotenv(Path(__file__).resolve().parent / ".env")


class Settings(BaseSettings):
    """Application settings. Values come from environment variables, then defaults."""

    # ── API keys ──
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")

    # ── Database ──
    database_url: str = Field(default="", alias="DATABASE_URL")

    # ── Server ──
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    # ── OpenAI models ──
    model_name: str = "gpt-4.1-mini"
    temp_generation: float = 0.4

    # ── Analytics ──
    activity_window_days: int = 30

    # ── Coaching tip thresholds ──
    bottleneck_high_days: float = 7.0
    bottleneck_medium_days: float = 3.0
    stale_high_days: float = 21.0
    stale_medium_days: float = 10.0
    min_applied_for_funnel_tip: int = 5
    min_interviews_for_funnel_tip: int = 3
    applied_to_interview_floor: float = 0.20
    interview_to_offer_floor: float = 0.25
    min_applications_for_age_tip: int = 5

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def _check_required_secrets(self) -> "Settings":
        """Fail fast at startup if the database is not configured."""
        if not self.database_url:
            raise ValueError("Missing required environment variables: DATABASE_URL")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached singleton settings instance."""
    return Settings()
