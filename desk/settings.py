from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT_DIR = Path(__file__).resolve().parents[1]


class DeskSettings(BaseSettings):
    """Platform-wide settings, read from DESK_* variables or the .env file."""

    model_config = SettingsConfigDict(
        env_prefix="DESK_",
        env_file=".env",
        extra="ignore",
    )

    log_level: str = Field("INFO", description="DEBUG, INFO, WARNING or ERROR")
    log_json: bool = Field(True, description="Render log lines as JSON")
    modules_path: Path = Field(ROOT_DIR / "modules")

    @field_validator("log_level", mode="before")
    @classmethod
    def _v_level(cls, v):
        level = str(v or "INFO").strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            return "INFO"
        return level


@lru_cache
def get_settings() -> DeskSettings:
    return DeskSettings()
