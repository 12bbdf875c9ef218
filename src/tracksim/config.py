"""Configuration management using Pydantic settings.

Precedence (highest first): command-line flags, TRACKSIM_* environment
variables, the .env file, the defaults below.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tracksim.geo.geometry import DistanceUnit

_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Simulator settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRACKSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Path source
    tracks_file: Path = Path("tracks.json")

    # Sink
    index_name: str = "tracks"
    es_url: str = "http://localhost:9200"
    es_username: str = "elastic"
    es_password: str = "changeme"
    es_api_key: str = ""                 # takes precedence over basic auth
    es_verify_tls: bool = False
    es_timeout: float = Field(default=10.0, gt=0)
    time_series: bool = False            # create the index as a TSDS
    bulk: bool = True                    # one _bulk per tick vs one request per sample
    recreate: Literal["ask", "always", "never"] = "ask"
    dry_run: bool = False                # log documents instead of sending them

    # Simulation
    tick_ms: int = Field(default=500, ge=1)
    speed: float = Field(default=500_000.0, gt=0)   # distance units per hour
    distance_unit: DistanceUnit = DistanceUnit.MILES
    heading_display_flip: bool = False
    max_ticks: Optional[int] = Field(default=None, ge=1)
    seed: Optional[int] = None

    # Fault injection
    jitter_window_ms: float = Field(default=0.0, ge=0)
    omission: bool = False
    omission_window_ticks: int = Field(default=10, ge=1)
    omission_recovery_ticks: int = Field(default=10, ge=0)

    # Logging
    log_level: str = "INFO"

    @field_validator("es_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level
