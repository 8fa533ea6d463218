"""
Configuration settings for the cogniguide learning state engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Graph Consolidation
    # ========================================
    merge_similarity_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Fuzzy name similarity above which two concepts are merged",
    )
    max_chain_count: int = Field(
        default=256,
        ge=1,
        description="Upper bound on root-to-leaf chains enumerated during graph analysis",
    )

    # ========================================
    # Spaced Repetition (SM-2)
    # ========================================
    sm2_initial_ease_factor: float = Field(
        default=2.5,
        description="Ease factor assigned to new cards",
    )
    sm2_minimum_ease_factor: float = Field(
        default=1.3,
        description="Floor for the ease factor",
    )
    sm2_first_interval_days: int = Field(
        default=1,
        description="Interval after the first successful repetition",
    )
    sm2_second_interval_days: int = Field(
        default=6,
        description="Interval after the second successful repetition",
    )

    # ========================================
    # Recommendations
    # ========================================
    recommendation_max_results: int = Field(
        default=5,
        ge=0,
        description="Maximum recommendations returned per request",
    )
    recommendation_enable_rest_breaks: bool = Field(
        default=True,
        description="Emit rest-break suggestions when fatigue is detected",
    )
    recommendation_min_confidence: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Recommendations below this confidence are dropped",
    )
    recommendation_diversity_factor: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Round-robin types before ranking when > 0",
    )

    # ========================================
    # Local State
    # ========================================
    state_db_path: str = Field(
        default="~/.cogniguide/state.db",
        description="SQLite key-value store used by the CLI",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def get_sm2_config(self) -> dict[str, Any]:
        """Get SM-2 scheduler parameters as a dictionary."""
        return {
            "initial_ease_factor": self.sm2_initial_ease_factor,
            "minimum_ease_factor": self.sm2_minimum_ease_factor,
            "first_interval": self.sm2_first_interval_days,
            "second_interval": self.sm2_second_interval_days,
        }

    def get_recommendation_config(self) -> dict[str, Any]:
        """Get recommendation engine defaults as a dictionary."""
        return {
            "max_recommendations": self.recommendation_max_results,
            "enable_rest_breaks": self.recommendation_enable_rest_breaks,
            "min_confidence_threshold": self.recommendation_min_confidence,
            "diversity_factor": self.recommendation_diversity_factor,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
