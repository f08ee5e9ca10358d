# logscope/core/config.py
"""
Central configuration for logscope.

This module defines a single `settings` object (Pydantic BaseSettings) that reads
configuration from environment variables and a local `.env` file.

Besides the usual runtime knobs, the analysis policy lives here:
- the sane-year window used to accept timestamps
- dataset size thresholds (loading offload, stride sampling, chart point budget)
- caps for the summary shortlists and the report appendix

They are policy values with defaults, not facts about log data, so every one of
them can be overridden per deployment.
"""

from __future__ import annotations

from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and optional `.env`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LOGSCOPE_",
        extra="ignore",
        case_sensitive=False,
    )

    # -----------------------
    # Runtime
    # -----------------------
    ENV: str = Field(default="dev", description="Environment: dev|test|prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (e.g., INFO, DEBUG)")

    # -----------------------
    # API / CORS
    # -----------------------
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins for the frontend",
    )

    # -----------------------
    # Upload limits
    # -----------------------
    MAX_UPLOAD_MB: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Max upload size in megabytes for log files",
    )
    ALLOWED_EXTENSIONS: List[str] = Field(
        default_factory=lambda: [".log", ".txt", ".out", ".json", ".csv"],
        description="File extensions accepted by the upload endpoints",
    )

    @property
    def MAX_UPLOAD_BYTES(self) -> int:
        """Derived upload size limit in bytes."""
        return int(self.MAX_UPLOAD_MB) * 1024 * 1024

    # -----------------------
    # Timestamp policy
    # -----------------------
    MIN_YEAR: int = Field(default=2020, description="Earliest accepted timestamp year (inclusive)")
    MAX_YEAR: int = Field(default=2030, description="Latest accepted timestamp year (inclusive)")

    # -----------------------
    # Dataset thresholds
    # -----------------------
    LARGE_DATASET_THRESHOLD: int = Field(
        default=10_000,
        ge=1,
        description="Inputs above this size are binned in the worker pool instead of inline",
    )
    SAMPLING_THRESHOLD: int = Field(
        default=50_000,
        ge=1,
        description="Valid-timestamp records above this count are stride sampled before binning",
    )
    MAX_TIMELINE_POINTS: int = Field(
        default=500,
        ge=1,
        description="Maximum number of buckets in a timeline before the width is coarsened",
    )
    DEFAULT_BUCKET_MINUTES: int = Field(default=30, ge=1, description="Default timeline bucket width")

    # -----------------------
    # Summary caps
    # -----------------------
    CRITICAL_RECORD_LIMIT: int = Field(default=10, ge=1)
    TOP_PATTERN_LIMIT: int = Field(default=5, ge=1)
    PATTERN_KEY_LENGTH: int = Field(default=80, ge=10)
    TOP_ACTOR_LIMIT: int = Field(default=10, ge=1)
    KEY_EVENT_LIMIT: int = Field(default=50, ge=1)

    # -----------------------
    # Reporting
    # -----------------------
    ADDITIONAL_SECTIONS_MAX_CHARS: int = Field(
        default=8000,
        ge=100,
        description="Character budget for free-text sections appended to a report",
    )

    # -----------------------
    # Concurrency
    # -----------------------
    ANALYSIS_WORKERS: int = Field(default=2, ge=1, le=32, description="Worker threads for timeline binning")

    # -----------------------
    # Validators / normalizers
    # -----------------------
    @field_validator("ENV")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        return (v or "dev").strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("CORS_ALLOW_ORIGINS")
    @classmethod
    def _clean_cors_origins(cls, v: List[str]) -> List[str]:
        cleaned = []
        for origin in v or []:
            o = (origin or "").strip()
            if o:
                cleaned.append(o)
        return cleaned

    @field_validator("ALLOWED_EXTENSIONS")
    @classmethod
    def _normalize_extensions(cls, v: List[str]) -> List[str]:
        cleaned = []
        for ext in v or []:
            e = (ext or "").strip().lower()
            if not e:
                continue
            cleaned.append(e if e.startswith(".") else f".{e}")
        return cleaned

    @model_validator(mode="after")
    def _check_year_window(self) -> "Settings":
        if self.MIN_YEAR > self.MAX_YEAR:
            raise ValueError(f"MIN_YEAR ({self.MIN_YEAR}) must not exceed MAX_YEAR ({self.MAX_YEAR})")
        return self


# Singleton instance imported across the codebase.
settings = Settings()
