"""Configuration via environment variables (POKERDB_*) or explicit arguments."""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from .settlement import DEFAULT_MAX_ATTEMPTS


def default_data_dir() -> Path:
    return Path.home() / ".config" / "pokerdb"


class PokerDBSettings(BaseSettings):
    model_config = {"env_prefix": "POKERDB_"}

    data_dir: Path = Field(default_factory=default_data_dir)
    max_settlement_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    log_level: str = "WARNING"
    log_dir: Path | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        name = str(v).strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"Unknown log level: {v}")
        return name

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)
