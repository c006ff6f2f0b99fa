"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FIELDOPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Field Service Dispatch API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for static data and run outputs.")
    support_points_file: Path = Field(
        default=Path("data/support_points.xlsx"),
        description="Workbook with support point addresses used as route start points.",
    )
    business_timezone: str = Field(
        default="America/Sao_Paulo",
        description="IANA time zone used to decide which tickets were completed 'today'.",
    )
    optimizer_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the AI route optimization service.",
    )
    optimizer_api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent to the AI route optimization service.",
    )
    optimizer_timeout_seconds: float = Field(default=60.0, gt=0.0)
    preventive_min_visits_per_day: int = Field(default=4, ge=1)
    preventive_max_visits_per_day: int = Field(default=6, ge=1)
    preventive_requester_name: str = Field(
        default="Sistema (Preventiva Automática)",
        description="Requester label written on automatically generated preventive tickets.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:9002",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )


    @field_validator("data_root", "support_points_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("optimizer_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text.rstrip("/") or None

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @model_validator(mode="after")
    def _check_visit_band(self) -> "Settings":
        if self.preventive_min_visits_per_day > self.preventive_max_visits_per_day:
            raise ValueError("preventive_min_visits_per_day cannot exceed preventive_max_visits_per_day")
        return self


settings = Settings()
