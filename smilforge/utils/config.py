"""Application configuration."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from .env and SMILFORGE_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SMILFORGE_",
        extra="ignore",
    )

    # Compiler defaults
    compile_precision: int = Field(default=4, ge=0, le=10)
    compile_optimize: bool = True
    compile_include_comments: bool = False
    compile_compatibility: Literal["standard", "webkit", "all"] = "standard"

    # Gizmo editing
    edit_precision: int = Field(default=3, ge=0, le=10)
    grid_size: float = 10.0
    snap_to_grid: bool = False
    rotation_snap_increment: float = 15.0
    hit_tolerance: float = 8.0

    # Playback
    simulation_quality: Literal["editing", "preview", "export"] = "editing"
    min_playback_rate: float = 0.1

    log_level: str = "INFO"


settings = Settings()
