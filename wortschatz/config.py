"""
Configuration settings for wortschatz.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with WORTSCHATZ_ except the Gemini keys, which
also accept the conventional GEMINI_API_KEY / GEMINI_API_KEYS names.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from wortschatz.learning.exercise_selector import SelectionWeights

DATA_DIR = Path.home() / ".wortschatz"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WORTSCHATZ_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ========================================
    # Storage
    # ========================================
    database_url: str = Field(
        default=f"sqlite:///{DATA_DIR / 'words.db'}",
        description="SQLAlchemy URL of the word store",
    )
    details_cache_ttl_days: int = Field(
        default=7,
        ge=0,
        description="Days a cached word-details payload stays valid",
    )

    # ========================================
    # Reasoning service (Gemini)
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WORTSCHATZ_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="Google Generative AI (Gemini) API key",
    )
    gemini_api_keys: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WORTSCHATZ_GEMINI_API_KEYS", "GEMINI_API_KEYS"),
        description="Comma-separated Gemini keys; one is picked at random per client",
    )
    ai_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model for exercise content and grading",
    )
    service_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout for a single content or grading call",
    )

    # ========================================
    # Sessions
    # ========================================
    session_limit: int = Field(
        default=20,
        ge=1,
        description="Maximum words queued in one review session",
    )

    # ========================================
    # Exercise selection weights
    # ========================================
    weight_multiple_choice: float = Field(default=0.25, ge=0)
    weight_cloze: float = Field(default=0.4, ge=0)
    weight_free_recall: float = Field(default=0.35, ge=0)
    weight_article_drill: float = Field(default=0.3, ge=0)
    weight_verb_form_drill: float = Field(default=0.35, ge=0)
    article_drill_ease_threshold: float = Field(
        default=2.8,
        description="Article drills are offered while a noun's ease is below this",
    )
    verb_drill_ease_threshold: float = Field(
        default=3.0,
        description="Verb-form drills are offered while a verb's ease is below this",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Log level for the CLI",
    )

    def selection_weights(self) -> SelectionWeights:
        """Build exercise-selection weights from these settings."""
        from wortschatz.learning.exercise_selector import SelectionWeights

        return SelectionWeights(
            multiple_choice=self.weight_multiple_choice,
            cloze_sentence=self.weight_cloze,
            free_recall=self.weight_free_recall,
            article_drill=self.weight_article_drill,
            verb_form_drill=self.weight_verb_form_drill,
            article_drill_ease_threshold=self.article_drill_ease_threshold,
            verb_drill_ease_threshold=self.verb_drill_ease_threshold,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
