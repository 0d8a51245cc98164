from datetime import date
from typing import List, Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.subscription import MonthBucket


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Configuration
    app_env: str = "dev"
    port: int = 8000
    log_level: str = "INFO"

    # Uploads above this size are rejected before any parsing
    max_upload_bytes: int = 10 * 1024 * 1024

    # "Still active as of" date for records without a cancellation date (default: today)
    report_cutoff_date: Optional[date] = None

    # Status policy (source data is uncontrolled, statuses are compared verbatim)
    active_statuses: List[str] = ["Ativa"]
    always_active_statuses: List[str] = ["Ativa", "Upgrade"]
    churn_statuses: List[str] = ["Cancelada"]

    # Monthly series policy
    series_respect_start_date: bool = False
    churn_denominator: Literal["active", "cohort"] = "active"
    month_range_start: Optional[str] = None  # Format: "MM-YYYY"
    month_range_end: Optional[str] = None  # Format: "MM-YYYY"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("month_range_start", "month_range_end")
    @classmethod
    def check_month_key(cls, value: Optional[str]) -> Optional[str]:
        """Reject a malformed "MM-YYYY" override at startup rather than on every upload"""
        if value:
            return MonthBucket.parse(value).key
        return value


# Global settings instance
settings = Settings()
